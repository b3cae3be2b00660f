"""
Tests for provider configuration, connections and the state file.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from skyform.config import AwsConfig, Configuration, load_config
from skyform.conns import AWSClient
from skyform.state import StateFile


class TestAwsConfig:
    """Tests for AwsConfig."""

    def test_defaults(self):
        """Test default configuration values."""
        config = AwsConfig()

        assert config.region == "us-east-1"
        assert config.profile is None
        assert config.tags == {}
        assert config.max_retries == 25

    def test_invalid_account_id(self):
        """Test account IDs must be twelve digits."""
        with pytest.raises(PydanticValidationError, match="12 digits"):
            AwsConfig(account_id="1234")

    def test_from_env(self, monkeypatch):
        """Test configuration is read from environment variables."""
        monkeypatch.setenv("AWS_REGION", "eu-west-1")
        monkeypatch.setenv("AWS_PROFILE", "video")
        monkeypatch.setenv("AWS_ACCOUNT_ID", "123456789012")
        monkeypatch.setenv("SKYFORM_MAX_RETRIES", "5")

        config = AwsConfig.from_env()

        assert config.region == "eu-west-1"
        assert config.profile == "video"
        assert config.account_id == "123456789012"
        assert config.max_retries == 5

    def test_from_env_default_region(self, monkeypatch):
        """Test AWS_DEFAULT_REGION is used when AWS_REGION is unset."""
        monkeypatch.delenv("AWS_REGION", raising=False)
        monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-southeast-2")

        assert AwsConfig.from_env().region == "ap-southeast-2"


class TestLoadConfig:
    """Tests for YAML configuration documents."""

    def test_load(self, tmp_path):
        """Test provider settings and resource instances are loaded."""
        path = tmp_path / "resources.yaml"
        path.write_text(
            "provider:\n"
            "  region: eu-west-1\n"
            "  tags:\n"
            "    team: video\n"
            "resources:\n"
            "  aws_macie_s3_bucket_association:\n"
            "    logs:\n"
            "      bucket_name: my-logs\n"
            "      prefix: app/\n"
            "  aws_medialive_input_security_group:\n"
            "    office:\n"
            "      whitelist_rules:\n"
            "        - cidr: 10.0.0.0/16\n"
        )

        config = load_config(path)

        assert config.provider.region == "eu-west-1"
        assert config.provider.tags == {"team": "video"}
        assert config.instances() == [
            ("aws_macie_s3_bucket_association", "logs", {"bucket_name": "my-logs", "prefix": "app/"}),
            ("aws_medialive_input_security_group", "office", {"whitelist_rules": [{"cidr": "10.0.0.0/16"}]}),
        ]

    def test_empty_document(self, tmp_path):
        """Test an empty file is an empty configuration."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = load_config(path)

        assert config.instances() == []
        assert config.provider == AwsConfig()

    def test_not_a_mapping(self, tmp_path):
        """Test a top-level list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="expected a mapping"):
            load_config(path)

    def test_instance_without_arguments(self):
        """Test a bare instance name yields an empty configuration."""
        config = Configuration(resources={"aws_widget": {"w1": None}})

        assert config.instances() == [("aws_widget", "w1", {})]


class TestAWSClient:
    """Tests for the connection object."""

    def test_injected_clients(self):
        """Test injected clients are returned without a session."""
        macie = MagicMock()
        meta = AWSClient(clients={"macie": macie})

        assert meta.macie_conn() is macie

    def test_no_session(self):
        """Test creating a client without a session fails."""
        with pytest.raises(RuntimeError, match="no session configured"):
            AWSClient().medialive_conn()

    def test_clients_cached(self):
        """Test one client is created per service."""
        session = MagicMock()
        meta = AWSClient(session=session, region="eu-west-1", endpoints={"medialive": "http://localhost:4566"})

        assert meta.medialive_conn() is meta.medialive_conn()

        session.client.assert_called_once()
        args, kwargs = session.client.call_args
        assert args == ("medialive",)
        assert kwargs["region_name"] == "eu-west-1"
        assert kwargs["endpoint_url"] == "http://localhost:4566"

    def test_account_id_from_sts(self):
        """Test the account ID is resolved through STS when not configured."""
        session = MagicMock()
        session.client.return_value.get_caller_identity.return_value = {"Account": "210987654321"}

        assert AWSClient(session=session).account_id == "210987654321"

    def test_skip_credentials_validation(self):
        """Test STS is not called when credential validation is skipped."""
        session = MagicMock()

        assert AWSClient(session=session, skip_credentials_validation=True).account_id is None
        session.client.assert_not_called()

    def test_from_config_assumes_role(self):
        """Test assume_role_arn exchanges credentials through STS."""
        config = AwsConfig(
            region="eu-west-1",
            account_id="123456789012",
            assume_role_arn="arn:aws:iam::123456789012:role/deploy",
            tags={"team": "video"},
        )
        with patch("skyform.conns.boto3.Session") as session_cls:
            sts = session_cls.return_value.client.return_value
            sts.assume_role.return_value = {
                "Credentials": {
                    "AccessKeyId": "AKIA",
                    "SecretAccessKey": "secret",
                    "SessionToken": "token",
                },
            }

            meta = AWSClient.from_config(config)

        sts.assume_role.assert_called_once_with(
            RoleArn="arn:aws:iam::123456789012:role/deploy",
            RoleSessionName="skyform",
            DurationSeconds=3600,
        )
        assert session_cls.call_args.kwargs["aws_session_token"] == "token"
        assert meta.default_tags == {"team": "video"}
        assert meta.account_id == "123456789012"


class TestStateFile:
    """Tests for JSON state persistence."""

    def test_missing_file(self, tmp_path):
        """Test a missing state file loads empty."""
        state = StateFile.load(tmp_path / "none.json")

        assert state.entries() == []

    def test_round_trip(self, tmp_path):
        """Test saved state loads back."""
        path = tmp_path / "nested" / "skyform.state.json"
        state = StateFile(path)
        state.put("aws_medialive_input", "ingest", {"id": "1234567"})
        state.save()

        loaded = StateFile.load(path)

        assert loaded.get("aws_medialive_input", "ingest") == {"id": "1234567"}
        assert json.loads(path.read_text())["version"] == 1

    def test_put_none_removes(self, tmp_path):
        """Test putting None removes an entry."""
        state = StateFile(tmp_path / "s.json")
        state.put("aws_widget", "w1", {"id": "w1"})
        state.put("aws_widget", "w1", None)

        assert state.get("aws_widget", "w1") is None

    def test_entries_split_names(self, tmp_path):
        """Test entries split keys at the first dot only."""
        state = StateFile(tmp_path / "s.json", {"aws_widget.w.1": {"id": "x"}})

        assert state.entries() == [("aws_widget", "w.1", {"id": "x"})]

    def test_unsupported_version(self, tmp_path):
        """Test unknown state versions are rejected."""
        path = tmp_path / "s.json"
        path.write_text(json.dumps({"version": 99, "resources": {}}))

        with pytest.raises(ValueError, match="unsupported state version 99"):
            StateFile.load(path)

"""
Tests for the skyform command line.
"""

import json

import pytest
from botocore.exceptions import EndpointConnectionError
from click.testing import CliRunner

from skyform.cli import cli

CONFIG = """
provider:
  region: us-east-1
resources:
  aws_macie_s3_bucket_association:
    logs:
      bucket_name: my-logs
      prefix: app/
"""

STATE = {
    "version": 1,
    "resources": {
        "aws_macie_s3_bucket_association.logs": {
            "id": "my-logs/app/",
            "bucket_name": "my-logs",
            "prefix": "app/",
            "member_account_id": "",
            "classification_type": [{"continuous": "FULL", "one_time": "NONE"}],
        },
    },
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch, provider):
    """A directory holding resources.yaml, with the CLI wired to mocked clients."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("skyform.cli.main.Provider", lambda config: provider)
    (tmp_path / "resources.yaml").write_text(CONFIG)
    return tmp_path


def write_state(path, state=STATE):
    (path / "skyform.state.json").write_text(json.dumps(state))


def read_state(path):
    return json.loads((path / "skyform.state.json").read_text())["resources"]


class TestResources:
    """Tests for the resources command."""

    def test_lists_all(self, runner):
        """Test every registered type is listed."""
        result = runner.invoke(cli, ["resources"])

        assert result.exit_code == 0
        assert "aws_macie_s3_bucket_association" in result.output
        assert "aws_medialive_multiplex_program" in result.output

    def test_filter_by_service(self, runner):
        """Test --service limits the listing."""
        result = runner.invoke(cli, ["resources", "--service", "macie"])

        assert result.exit_code == 0
        assert "aws_macie_s3_bucket_association" in result.output
        assert "medialive" not in result.output


class TestValidate:
    """Tests for the validate command."""

    def test_valid(self, runner, workdir):
        """Test a valid configuration passes."""
        result = runner.invoke(cli, ["validate", "resources.yaml"])

        assert result.exit_code == 0
        assert "1 resource(s) valid" in result.output

    def test_invalid(self, runner, workdir):
        """Test problems are reported and the exit code is non-zero."""
        (workdir / "resources.yaml").write_text(
            "resources:\n"
            "  aws_macie_s3_bucket_association:\n"
            "    logs:\n"
            "      prefix: app/\n"
        )

        result = runner.invoke(cli, ["validate", "resources.yaml"])

        assert result.exit_code == 1
        assert "bucket_name: required argument is missing" in result.output

    def test_unreadable_config(self, runner, workdir):
        """Test a malformed document fails cleanly."""
        (workdir / "resources.yaml").write_text("- just\n- a list\n")

        result = runner.invoke(cli, ["validate", "resources.yaml"])

        assert result.exit_code == 1
        assert "Could not load resources.yaml" in result.output


class TestPlanApply:
    """Tests for plan, apply, refresh and destroy."""

    def test_plan_create(self, runner, workdir):
        """Test an empty state plans a create."""
        result = runner.invoke(cli, ["plan", "resources.yaml"])

        assert result.exit_code == 0
        assert "aws_macie_s3_bucket_association.logs: create" in result.output
        assert "Plan: 1 change(s)" in result.output

    def test_plan_noop(self, runner, workdir):
        """Test matching state plans nothing."""
        write_state(workdir)

        result = runner.invoke(cli, ["plan", "resources.yaml"])

        assert result.exit_code == 0
        assert "Plan: 0 change(s)" in result.output

    def test_plan_replace(self, runner, workdir):
        """Test replacements name the attributes forcing them."""
        (workdir / "resources.yaml").write_text(CONFIG.replace("prefix: app/", "prefix: web/"))
        write_state(workdir)

        result = runner.invoke(cli, ["plan", "resources.yaml"])

        assert "logs: replace (forced by prefix)" in result.output

    def test_plan_unregistered_type_in_state(self, runner, workdir):
        """Test state left by a removed service package fails with a message."""
        state = {"version": 1, "resources": {"aws_gone_type.x": {"id": "x"}}}
        write_state(workdir, state)

        result = runner.invoke(cli, ["plan", "resources.yaml"])

        assert result.exit_code == 1
        assert "✗ aws_gone_type.x: unsupported resource type: aws_gone_type" in result.output

    def test_apply_writes_state(self, runner, workdir, macie_conn, list_pages):
        """Test apply creates the association and records it."""
        macie_conn.associate_s3_resources.return_value = {"FailedS3Resources": []}
        list_pages([{
            "BucketName": "my-logs",
            "Prefix": "app/",
            "ClassificationType": {"Continuous": "FULL", "OneTime": "NONE"},
        }])

        result = runner.invoke(cli, ["apply", "resources.yaml"])

        assert result.exit_code == 0, result.output
        assert read_state(workdir)["aws_macie_s3_bucket_association.logs"]["id"] == "my-logs/app/"
        assert "Apply complete" in result.output

    def test_apply_failure(self, runner, workdir, macie_conn, client_error):
        """Test a failed create exits non-zero and leaves state empty."""
        macie_conn.associate_s3_resources.side_effect = client_error("AccessDeniedException", "denied")

        result = runner.invoke(cli, ["apply", "resources.yaml"])

        assert result.exit_code == 1
        assert "creating Macie S3 bucket association" in result.output
        assert read_state(workdir) == {}

    def test_apply_connection_failure(self, runner, workdir, macie_conn):
        """Test transport errors are reported like API errors."""
        macie_conn.associate_s3_resources.side_effect = EndpointConnectionError(endpoint_url="https://macie")

        result = runner.invoke(cli, ["apply", "resources.yaml"])

        assert result.exit_code == 1
        assert "✗ aws_macie_s3_bucket_association.logs: creating Macie S3 bucket association: Could not connect" in result.output

    def test_replace_failed_create_drops_old_state(self, runner, workdir, macie_conn, client_error):
        """Test the deleted half of a failed replacement is removed from state."""
        (workdir / "resources.yaml").write_text(CONFIG.replace("prefix: app/", "prefix: web/"))
        write_state(workdir)
        macie_conn.disassociate_s3_resources.return_value = {"FailedS3Resources": []}
        macie_conn.associate_s3_resources.side_effect = client_error("AccessDeniedException", "denied")

        result = runner.invoke(cli, ["apply", "resources.yaml"])

        assert result.exit_code == 1
        macie_conn.disassociate_s3_resources.assert_called_once()
        assert read_state(workdir) == {}

    def test_apply_deletes_removed_resources(self, runner, workdir, macie_conn):
        """Test resources dropped from configuration are deleted."""
        (workdir / "resources.yaml").write_text("resources: {}\n")
        write_state(workdir)
        macie_conn.disassociate_s3_resources.return_value = {"FailedS3Resources": []}

        result = runner.invoke(cli, ["apply", "resources.yaml"])

        assert result.exit_code == 0, result.output
        macie_conn.disassociate_s3_resources.assert_called_once()
        assert read_state(workdir) == {}

    def test_refresh_drops_missing(self, runner, workdir, list_pages):
        """Test refresh removes objects that no longer exist."""
        write_state(workdir)
        list_pages([])

        result = runner.invoke(cli, ["refresh", "resources.yaml"])

        assert result.exit_code == 0
        assert "gone, removed from state" in result.output
        assert read_state(workdir) == {}

    def test_destroy(self, runner, workdir, macie_conn):
        """Test destroy deletes everything in state."""
        write_state(workdir)
        macie_conn.disassociate_s3_resources.return_value = {"FailedS3Resources": []}

        result = runner.invoke(cli, ["destroy", "resources.yaml"])

        assert result.exit_code == 0
        macie_conn.disassociate_s3_resources.assert_called_once_with(
            AssociatedS3Resources=[{"BucketName": "my-logs", "Prefix": "app/"}],
        )
        assert read_state(workdir) == {}


class TestImport:
    """Tests for the import command."""

    def test_import(self, runner, workdir, medialive_conn):
        """Test an existing object is read into state."""
        medialive_conn.describe_input_security_group.return_value = {
            "Arn": "arn:aws:medialive:us-east-1:123456789012:inputSecurityGroup:123456",
            "Id": "123456",
            "State": "IDLE",
            "WhitelistRules": [{"Cidr": "10.0.0.0/16"}],
        }

        result = runner.invoke(
            cli, ["import", "resources.yaml", "aws_medialive_input_security_group", "office", "123456"],
        )

        assert result.exit_code == 0, result.output
        state = read_state(workdir)["aws_medialive_input_security_group.office"]
        assert state["whitelist_rules"] == [{"cidr": "10.0.0.0/16"}]

    def test_import_existing_name(self, runner, workdir):
        """Test importing over an existing state entry is refused."""
        write_state(workdir)

        result = runner.invoke(
            cli, ["import", "resources.yaml", "aws_macie_s3_bucket_association", "logs", "my-logs/app/"],
        )

        assert result.exit_code == 1
        assert "already exists in state" in result.output

    def test_import_unsupported(self, runner, workdir):
        """Test resources without import support fail cleanly."""
        result = runner.invoke(
            cli, ["import", "resources.yaml", "aws_macie_s3_bucket_association", "other", "my-logs/"],
        )

        assert result.exit_code == 1
        assert "doesn't support import" in result.output

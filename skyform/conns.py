"""
AWSClient: the connection object handed to every resource handler.
"""

import logging
from typing import Any

import boto3
from botocore.config import Config

from skyform import names
from skyform.config import AwsConfig

log = logging.getLogger(__name__)


class AWSClient:
    """
    Centralized boto3 client management.

    Clients are created lazily, one per service, and cached. Tests inject
    ready-made clients through `clients`.

    Example:
        meta = AWSClient.from_config(AwsConfig(region="eu-west-1"))
        conn = meta.macie_conn()
    """

    def __init__(
        self,
        session: Any = None,
        region: str = "us-east-1",
        account_id: str | None = None,
        default_tags: dict[str, str] | None = None,
        endpoints: dict[str, str] | None = None,
        max_retries: int = 25,
        clients: dict[str, Any] | None = None,
        skip_credentials_validation: bool = False,
    ):
        self.session = session
        self.region = region
        self._account_id = account_id
        self.default_tags = dict(default_tags or {})
        self.endpoints = dict(endpoints or {})
        self.botocore_config = Config(
            region_name=region,
            retries={"max_attempts": max_retries, "mode": "standard"},
        )
        self._clients: dict[str, Any] = dict(clients or {})
        self.skip_credentials_validation = skip_credentials_validation

    @classmethod
    def from_config(cls, config: AwsConfig) -> "AWSClient":
        """
        Build a connection from provider configuration.

        When `assume_role_arn` is set the base session's credentials are
        exchanged through STS for the role's temporary credentials.
        """
        session = boto3.Session(profile_name=config.profile, region_name=config.region)

        if config.assume_role_arn:
            log.debug("Assuming role %s", config.assume_role_arn)
            sts = session.client("sts")
            creds = sts.assume_role(
                RoleArn=config.assume_role_arn,
                RoleSessionName="skyform",
                DurationSeconds=config.session_duration,
            )["Credentials"]
            session = boto3.Session(
                aws_access_key_id=creds["AccessKeyId"],
                aws_secret_access_key=creds["SecretAccessKey"],
                aws_session_token=creds["SessionToken"],
                region_name=config.region,
            )

        return cls(
            session=session,
            region=config.region,
            account_id=config.account_id,
            default_tags=config.tags,
            endpoints=config.endpoints,
            max_retries=config.max_retries,
            skip_credentials_validation=config.skip_credentials_validation,
        )

    @property
    def account_id(self) -> str | None:
        """Account ID from configuration, resolved through STS when unset."""
        if self._account_id is None and self.session is not None and not self.skip_credentials_validation:
            identity = self.client("sts").get_caller_identity()
            self._account_id = identity["Account"]
        return self._account_id

    def client(self, service: str) -> Any:
        if service not in self._clients:
            if self.session is None:
                raise RuntimeError(f"no session configured to create a {service} client")
            log.debug("Creating %s client in %s", service, self.region)
            self._clients[service] = self.session.client(
                service,
                region_name=self.region,
                endpoint_url=self.endpoints.get(service),
                config=self.botocore_config,
            )
        return self._clients[service]

    def macie_conn(self) -> Any:
        return self.client(names.MACIE)

    def medialive_conn(self) -> Any:
        return self.client(names.MEDIALIVE)

    def __repr__(self) -> str:
        return f"AWSClient(region={self.region})"

"""
Provider configuration.

The provider is configured with an AwsConfig, either built in code,
loaded from the `provider` section of a YAML configuration file, or read
from environment variables.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


class AwsConfig(BaseModel):
    """
    AWS provider configuration.

    Example:
        aws_config = AwsConfig(
            region="us-east-1",
            profile="production",
            tags={
                "environment": "production",
                "managed_by": "skyform",
            }
        )

        provider = Provider(config=aws_config)
    """

    region: str = Field(default="us-east-1", description="AWS region")
    profile: str | None = Field(default=None, description="AWS profile name")
    account_id: str | None = Field(default=None, description="AWS account ID")
    tags: dict[str, str] = Field(
        default_factory=dict, description="Default tags for all resources"
    )
    assume_role_arn: str | None = Field(
        default=None, description="Optional role ARN to assume"
    )
    session_duration: int = Field(
        default=3600, description="Session duration in seconds"
    )
    max_retries: int = Field(
        default=25, description="Maximum attempts for throttled or failed API calls"
    )
    endpoints: dict[str, str] = Field(
        default_factory=dict, description="Per-service endpoint URL overrides"
    )
    skip_credentials_validation: bool = Field(
        default=False, description="Do not call STS to resolve the account ID"
    )

    @field_validator("account_id")
    @classmethod
    def _check_account_id(cls, value: str | None) -> str | None:
        if value is not None and not (len(value) == 12 and value.isdigit()):
            raise ValueError("account_id must be exactly 12 digits")
        return value

    @classmethod
    def from_env(cls) -> "AwsConfig":
        """
        Build a configuration from environment variables.

        Reads AWS_REGION (or AWS_DEFAULT_REGION), AWS_PROFILE,
        AWS_ACCOUNT_ID, SKYFORM_ASSUME_ROLE_ARN and SKYFORM_MAX_RETRIES.
        """
        values: dict[str, Any] = {
            "region": os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1",
            "profile": os.getenv("AWS_PROFILE"),
            "account_id": os.getenv("AWS_ACCOUNT_ID"),
            "assume_role_arn": os.getenv("SKYFORM_ASSUME_ROLE_ARN"),
        }
        max_retries = os.getenv("SKYFORM_MAX_RETRIES")
        if max_retries:
            values["max_retries"] = int(max_retries)
        return cls(**values)


class Configuration(BaseModel):
    """
    A declarative configuration document.

    `resources` maps a resource type name to named instances:

        provider:
          region: us-east-1
        resources:
          aws_macie_s3_bucket_association:
            logs:
              bucket_name: my-logs
              prefix: app/
    """

    provider: AwsConfig = Field(default_factory=AwsConfig)
    resources: dict[str, dict[str, dict[str, Any] | None] | None] = Field(default_factory=dict)

    def instances(self) -> list[tuple[str, str, dict[str, Any]]]:
        """Flatten to (type_name, name, config) triples."""
        return [
            (type_name, name, config or {})
            for type_name, named in self.resources.items()
            for name, config in (named or {}).items()
        ]


def load_config(path: str | Path) -> Configuration:
    """
    Load a YAML configuration document.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is not a mapping
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")

    return Configuration(**data)

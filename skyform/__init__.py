"""
skyform: resource plugins for AWS infrastructure-as-code.

Each AWS service ships a service package: a registration table mapping
resource type names to factories. A factory returns a Resource, a schema
plus create/read/update/delete handlers that translate declarative
configuration into boto3 calls.

Core concepts:
- Resource / Schema: attribute declarations and lifecycle handlers
- ResourceData: a handler's view of configuration and state
- ServicePackage: per-service registration table
- Provider: loads service packages and drives resource lifecycles

Example:
    from skyform import Provider
    from skyform.config import AwsConfig

    provider = Provider(config=AwsConfig(region="us-east-1"))

    state = provider.create(
        "aws_macie_s3_bucket_association",
        {"bucket_name": "my-logs", "prefix": "app/"},
    )
    # state["id"] == "my-logs/app/"
"""

__version__ = "0.1.0"

from skyform.config import AwsConfig
from skyform.errors import (
    ResourceOperationError,
    SkyformError,
    ValidationError,
)
from skyform.provider import Provider
from skyform.resource_data import ResourceData
from skyform.schema import Resource, Schema
from skyform.types import ServicePackage

__all__ = [
    "AwsConfig",
    "Provider",
    "Resource",
    "ResourceData",
    "ResourceOperationError",
    "Schema",
    "ServicePackage",
    "SkyformError",
    "ValidationError",
]

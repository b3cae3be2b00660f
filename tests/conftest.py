"""
Shared fixtures: boto3 clients are MagicMocks injected into AWSClient.
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from skyform.conns import AWSClient
from skyform.provider import Provider
from skyform.services import macie, medialive


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Keep any accidental real boto3 call away from real credentials."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def client_error():
    """Build a botocore ClientError for a given code and message."""

    def build(code: str, message: str = "", operation: str = "Operation") -> ClientError:
        return ClientError({"Error": {"Code": code, "Message": message}}, operation)

    return build


@pytest.fixture
def macie_conn():
    return MagicMock(name="macie")


@pytest.fixture
def medialive_conn():
    return MagicMock(name="medialive")


@pytest.fixture
def meta(macie_conn, medialive_conn):
    return AWSClient(
        region="us-east-1",
        account_id="123456789012",
        clients={"macie": macie_conn, "medialive": medialive_conn},
    )


@pytest.fixture
def provider(meta):
    return Provider(
        meta=meta,
        service_packages=[macie.service_package, medialive.service_package],
    )


@pytest.fixture
def list_pages(macie_conn):
    """Configure list_s3_resources pagination to yield the given pages."""

    def configure(*pages):
        macie_conn.get_paginator.return_value.paginate.return_value = [
            {"S3Resources": list(page)} for page in pages
        ]

    return configure

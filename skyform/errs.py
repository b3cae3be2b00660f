"""
Helpers for classifying AWS API errors.
"""

from typing import Any

from botocore.exceptions import ClientError


def error_code(err: BaseException) -> str:
    """Return the AWS error code of a ClientError, or "" for anything else."""
    if isinstance(err, ClientError):
        return err.response.get("Error", {}).get("Code", "")
    return ""


def error_message(err: BaseException) -> str:
    if isinstance(err, ClientError):
        return err.response.get("Error", {}).get("Message", "")
    return str(err)


def is_a(err: BaseException, code: str) -> bool:
    return error_code(err) == code


def is_a_message_contains(err: BaseException, code: str, text: str) -> bool:
    return is_a(err, code) and text in error_message(err)


def failed_item_matches(item: dict[str, Any], code: str, text: str) -> bool:
    """
    Match a failed item reported in the body of a batch API response.

    Batch APIs return `{"ErrorCode": ..., "ErrorMessage": ..., "FailedItem":
    {...}}` entries instead of raising.
    """
    return item.get("ErrorCode") == code and text in (item.get("ErrorMessage") or "")


def format_failed_item(item: dict[str, Any]) -> str:
    failed = item.get("FailedItem") or {}
    target = failed.get("BucketName", "")
    if failed.get("Prefix"):
        target = f"{target}/{failed['Prefix']}"
    message = f"{item.get('ErrorCode', 'UnknownError')}: {item.get('ErrorMessage', '')}"
    if target:
        message = f"{message} ({target})"
    return message

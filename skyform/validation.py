"""
Attribute validators.

Each factory returns a callable `(value, name) -> list[str]` suitable for
`Schema.validate`.
"""

import ipaddress
import re
from typing import Any, Iterable

from skyform.schema import Validator

_ACCOUNT_ID = re.compile(r"^\d{12}$")
_ARN = re.compile(r"^arn:[\w-]+:[\w-]+:[\w-]*:(\d{12})?:.+$")


def string_in_slice(valid: Iterable[str], ignore_case: bool = False) -> Validator:
    """Value must be one of `valid`."""
    choices = list(valid)

    def validate(value: Any, name: str) -> list[str]:
        if not isinstance(value, str):
            return [f"{name}: expected type to be string"]
        for choice in choices:
            if value == choice or (ignore_case and value.lower() == choice.lower()):
                return []
        return [f"{name}: expected to be one of {choices}, got {value}"]

    return validate


def string_len_between(minimum: int, maximum: int) -> Validator:
    def validate(value: Any, name: str) -> list[str]:
        if not minimum <= len(value) <= maximum:
            return [
                f"{name}: expected length to be in the range ({minimum} - {maximum}), "
                f"got {value}"
            ]
        return []

    return validate


def int_between(minimum: int, maximum: int) -> Validator:
    def validate(value: Any, name: str) -> list[str]:
        if not minimum <= value <= maximum:
            return [f"{name}: expected to be in the range ({minimum} - {maximum}), got {value}"]
        return []

    return validate


def valid_account_id(value: Any, name: str) -> list[str]:
    """AWS account IDs are exactly twelve digits."""
    if not isinstance(value, str) or not _ACCOUNT_ID.match(value):
        return [f"{name}: {value!r} doesn't look like AWS Account ID (exactly 12 digits)"]
    return []


def valid_arn(value: Any, name: str) -> list[str]:
    if value == "":
        return []
    if not isinstance(value, str) or not _ARN.match(value):
        return [f"{name}: {value!r} is an invalid ARN"]
    return []


def is_cidr(value: Any, name: str) -> list[str]:
    try:
        ipaddress.ip_network(value, strict=False)
    except ValueError:
        return [f"{name}: {value!r} is not a valid CIDR block"]
    return []

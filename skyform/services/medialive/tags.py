"""
MediaLive resource tagging.
"""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from skyform.errors import ResourceOperationError
from skyform.tags import diff_tags

log = logging.getLogger(__name__)


def update_tags(conn, arn: str, old: dict, new: dict) -> None:
    """Apply the difference between two tag sets to a MediaLive ARN."""
    upsert, removed = diff_tags(old or {}, new or {})

    try:
        if removed:
            log.debug("Removing tags %s from %s", removed, arn)
            conn.delete_tags(ResourceArn=arn, TagKeys=removed)
        if upsert:
            log.debug("Setting tags %s on %s", sorted(upsert), arn)
            conn.create_tags(ResourceArn=arn, Tags=upsert)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"updating MediaLive tags ({arn}): {err}") from err

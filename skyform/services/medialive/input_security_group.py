"""
aws_medialive_input_security_group: CIDR allow-list for MediaLive push inputs.
"""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from skyform import errs
from skyform.errors import NotFoundError, ResourceOperationError
from skyform.schema import TYPE_LIST, TYPE_STRING, Resource, Schema
from skyform.services.medialive.tags import update_tags
from skyform.tags import merged_tags, set_tags_out, tags_schema, tags_schema_computed
from skyform.validation import is_cidr

log = logging.getLogger(__name__)

ERR_CODE_NOT_FOUND = "NotFoundException"


def resource_input_security_group() -> Resource:
    return Resource(
        schema={
            "arn": Schema(type=TYPE_STRING, computed=True),
            "inputs": Schema(type=TYPE_LIST, computed=True, elem=Schema(type=TYPE_STRING)),
            "whitelist_rules": Schema(
                type=TYPE_LIST,
                required=True,
                min_items=1,
                elem=Resource(
                    schema={
                        "cidr": Schema(type=TYPE_STRING, required=True, validate=is_cidr),
                    },
                ),
            ),
            "tags": tags_schema(),
            "tags_all": tags_schema_computed(),
        },
        create=resource_input_security_group_create,
        read=resource_input_security_group_read,
        update=resource_input_security_group_update,
        delete=resource_input_security_group_delete,
        importable=True,
        timeouts={"create": 300, "update": 300, "delete": 300},
    )


def resource_input_security_group_create(d, meta) -> None:
    conn = meta.medialive_conn()

    req = {"WhitelistRules": expand_whitelist_rules(d.get("whitelist_rules"))}
    tags = merged_tags(d, meta)
    if tags:
        req["Tags"] = tags

    log.debug("Creating MediaLive input security group: %s", req)
    try:
        resp = conn.create_input_security_group(**req)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"creating MediaLive input security group: {err}") from err

    d.set_id(resp["SecurityGroup"]["Id"])
    resource_input_security_group_read(d, meta)


def resource_input_security_group_read(d, meta) -> None:
    conn = meta.medialive_conn()

    try:
        out = find_input_security_group_by_id(conn, d.id)
    except NotFoundError:
        log.warning("MediaLive input security group (%s) not found, removing from state", d.id)
        d.set_id("")
        return
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(
            f"reading MediaLive input security group ({d.id}): {err}"
        ) from err

    d.set("arn", out.get("Arn"))
    d.set("inputs", out.get("Inputs") or [])
    d.set("whitelist_rules", flatten_whitelist_rules(out.get("WhitelistRules")))
    set_tags_out(d, meta, out.get("Tags"))


def resource_input_security_group_update(d, meta) -> None:
    conn = meta.medialive_conn()

    if d.has_change("whitelist_rules"):
        req = {
            "InputSecurityGroupId": d.id,
            "WhitelistRules": expand_whitelist_rules(d.get("whitelist_rules")),
        }
        log.debug("Updating MediaLive input security group: %s", req)
        try:
            conn.update_input_security_group(**req)
        except (ClientError, BotoCoreError) as err:
            raise ResourceOperationError(
                f"updating MediaLive input security group ({d.id}): {err}"
            ) from err

    old_tags, _ = d.get_change("tags_all")
    new_tags = merged_tags(d, meta)
    if old_tags != new_tags:
        update_tags(conn, d.get("arn"), old_tags, new_tags)

    resource_input_security_group_read(d, meta)


def resource_input_security_group_delete(d, meta) -> None:
    conn = meta.medialive_conn()

    log.debug("Deleting MediaLive input security group: %s", d.id)
    try:
        conn.delete_input_security_group(InputSecurityGroupId=d.id)
    except (ClientError, BotoCoreError) as err:
        if errs.is_a(err, ERR_CODE_NOT_FOUND):
            return
        raise ResourceOperationError(
            f"deleting MediaLive input security group ({d.id}): {err}"
        ) from err


def find_input_security_group_by_id(conn, group_id: str) -> dict:
    try:
        out = conn.describe_input_security_group(InputSecurityGroupId=group_id)
    except ClientError as err:
        if errs.is_a(err, ERR_CODE_NOT_FOUND):
            raise NotFoundError(f"input security group {group_id} not found") from err
        raise

    if not out or out.get("State") == "DELETED":
        raise NotFoundError(f"input security group {group_id} not found")

    return out


def expand_whitelist_rules(rules: list | None) -> list[dict[str, str]]:
    return [{"Cidr": rule["cidr"]} for rule in rules or [] if rule]


def flatten_whitelist_rules(rules: list | None) -> list[dict[str, str]]:
    return [{"cidr": rule.get("Cidr", "")} for rule in rules or []]

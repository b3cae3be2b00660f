"""
aws_medialive_input: a MediaLive input (push, pull, MediaConnect or device).
"""

import logging
import uuid

from botocore.exceptions import BotoCoreError, ClientError

from skyform import errs
from skyform.errors import NotFoundError, ResourceOperationError
from skyform.schema import TYPE_LIST, TYPE_STRING, Resource, Schema
from skyform.services.medialive.flex import first_block
from skyform.services.medialive.tags import update_tags
from skyform.tags import merged_tags, set_tags_out, tags_schema, tags_schema_computed
from skyform.validation import string_in_slice, valid_arn
from skyform.waiter import wait

log = logging.getLogger(__name__)

ERR_CODE_NOT_FOUND = "NotFoundException"

INPUT_TYPES = [
    "UDP_PUSH",
    "RTP_PUSH",
    "RTMP_PUSH",
    "RTMP_PULL",
    "URL_PULL",
    "MP4_FILE",
    "MEDIACONNECT",
    "INPUT_DEVICE",
    "AWS_CDI",
    "TS_FILE",
]


def _string_list(**kwargs) -> Schema:
    return Schema(type=TYPE_LIST, elem=Schema(type=TYPE_STRING), **kwargs)


def resource_input() -> Resource:
    return Resource(
        schema={
            "arn": Schema(type=TYPE_STRING, computed=True),
            "attached_channels": _string_list(computed=True),
            "destinations": Schema(
                type=TYPE_LIST,
                optional=True,
                elem=Resource(schema={
                    "stream_name": Schema(type=TYPE_STRING, required=True),
                }),
            ),
            "input_class": Schema(type=TYPE_STRING, computed=True),
            "input_devices": Schema(
                type=TYPE_LIST,
                optional=True,
                elem=Resource(schema={
                    "id": Schema(type=TYPE_STRING, required=True),
                }),
            ),
            "input_partner_ids": _string_list(computed=True),
            "input_security_groups": _string_list(optional=True),
            "input_source_type": Schema(type=TYPE_STRING, computed=True),
            "media_connect_flows": Schema(
                type=TYPE_LIST,
                optional=True,
                elem=Resource(schema={
                    "flow_arn": Schema(type=TYPE_STRING, required=True, validate=valid_arn),
                }),
            ),
            "name": Schema(type=TYPE_STRING, required=True),
            "role_arn": Schema(type=TYPE_STRING, optional=True, computed=True, validate=valid_arn),
            "sources": Schema(
                type=TYPE_LIST,
                optional=True,
                elem=Resource(schema={
                    "password_param": Schema(type=TYPE_STRING, required=True),
                    "url": Schema(type=TYPE_STRING, required=True),
                    "username": Schema(type=TYPE_STRING, required=True),
                }),
            ),
            "type": Schema(
                type=TYPE_STRING,
                required=True,
                force_new=True,
                validate=string_in_slice(INPUT_TYPES),
            ),
            "vpc": Schema(
                type=TYPE_LIST,
                optional=True,
                force_new=True,
                max_items=1,
                elem=Resource(schema={
                    "security_group_ids": _string_list(optional=True, computed=True, max_items=5),
                    "subnet_ids": _string_list(required=True),
                }),
            ),
            "tags": tags_schema(),
            "tags_all": tags_schema_computed(),
        },
        create=resource_input_create,
        read=resource_input_read,
        update=resource_input_update,
        delete=resource_input_delete,
        importable=True,
        timeouts={"create": 300, "update": 300, "delete": 300},
    )


def resource_input_create(d, meta) -> None:
    conn = meta.medialive_conn()

    req = {
        "Name": d.get("name"),
        "Type": d.get("type"),
        "RequestId": str(uuid.uuid4()),
    }
    req.update(expand_input_settings(d))
    tags = merged_tags(d, meta)
    if tags:
        req["Tags"] = tags
    vpc = first_block(d.get("vpc"))
    if vpc:
        req["Vpc"] = expand_vpc(vpc)

    log.debug("Creating MediaLive input: %s", req)
    try:
        resp = conn.create_input(**req)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"creating MediaLive input ({d.get('name')}): {err}") from err

    d.set_id(resp["Input"]["Id"])

    wait(
        conn, "input_detached", meta_timeout(d, "create"),
        f"MediaLive input ({d.id}) create", InputId=d.id,
    )

    resource_input_read(d, meta)


def resource_input_read(d, meta) -> None:
    conn = meta.medialive_conn()

    try:
        out = find_input_by_id(conn, d.id)
    except NotFoundError:
        log.warning("MediaLive input (%s) not found, removing from state", d.id)
        d.set_id("")
        return
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"reading MediaLive input ({d.id}): {err}") from err

    d.set("arn", out.get("Arn"))
    d.set("attached_channels", out.get("AttachedChannels") or [])
    d.set("input_class", out.get("InputClass"))
    d.set("input_devices", [{"id": v.get("Id", "")} for v in out.get("InputDevices") or []])
    d.set("input_partner_ids", out.get("InputPartnerIds") or [])
    d.set("input_security_groups", out.get("SecurityGroups") or [])
    d.set("input_source_type", out.get("InputSourceType"))
    d.set("media_connect_flows", [
        {"flow_arn": v.get("FlowArn", "")} for v in out.get("MediaConnectFlows") or []
    ])
    d.set("name", out.get("Name"))
    d.set("role_arn", out.get("RoleArn"))
    d.set("sources", flatten_sources(out.get("Sources")))
    d.set("type", out.get("Type"))
    set_tags_out(d, meta, out.get("Tags"))


def resource_input_update(d, meta) -> None:
    conn = meta.medialive_conn()

    if d.has_changes_except("tags", "tags_all"):
        req = {"InputId": d.id, "Name": d.get("name")}
        req.update(expand_input_settings(d))

        log.debug("Updating MediaLive input: %s", req)
        try:
            conn.update_input(**req)
        except (ClientError, BotoCoreError) as err:
            raise ResourceOperationError(f"updating MediaLive input ({d.id}): {err}") from err

        # attached inputs stay ATTACHED; only detached ones settle back to DETACHED
        if not d.get("attached_channels"):
            wait(
                conn, "input_detached", meta_timeout(d, "update"),
                f"MediaLive input ({d.id}) update", InputId=d.id,
            )

    old_tags, _ = d.get_change("tags_all")
    new_tags = merged_tags(d, meta)
    if old_tags != new_tags:
        update_tags(conn, d.get("arn"), old_tags, new_tags)

    resource_input_read(d, meta)


def resource_input_delete(d, meta) -> None:
    conn = meta.medialive_conn()

    log.debug("Deleting MediaLive input: %s", d.id)
    try:
        conn.delete_input(InputId=d.id)
    except (ClientError, BotoCoreError) as err:
        if errs.is_a(err, ERR_CODE_NOT_FOUND):
            return
        raise ResourceOperationError(f"deleting MediaLive input ({d.id}): {err}") from err

    wait(
        conn, "input_deleted", meta_timeout(d, "delete"),
        f"MediaLive input ({d.id}) delete", InputId=d.id,
    )


def find_input_by_id(conn, input_id: str) -> dict:
    try:
        out = conn.describe_input(InputId=input_id)
    except ClientError as err:
        if errs.is_a(err, ERR_CODE_NOT_FOUND):
            raise NotFoundError(f"input {input_id} not found") from err
        raise

    if not out or out.get("State") == "DELETED":
        raise NotFoundError(f"input {input_id} not found")

    return out


def meta_timeout(d, operation: str) -> int:
    return d.resource.timeout(operation, default=300)


def expand_input_settings(d) -> dict:
    """Request fields shared by CreateInput and UpdateInput."""
    req = {}
    destinations, ok = d.get_ok("destinations")
    if ok:
        req["Destinations"] = [{"StreamName": v["stream_name"]} for v in destinations if v]
    devices, ok = d.get_ok("input_devices")
    if ok:
        req["InputDevices"] = [{"Id": v["id"]} for v in devices if v]
    groups, ok = d.get_ok("input_security_groups")
    if ok:
        req["InputSecurityGroups"] = groups
    flows, ok = d.get_ok("media_connect_flows")
    if ok:
        req["MediaConnectFlows"] = [{"FlowArn": v["flow_arn"]} for v in flows if v]
    role_arn, ok = d.get_ok("role_arn")
    if ok:
        req["RoleArn"] = role_arn
    sources, ok = d.get_ok("sources")
    if ok:
        req["Sources"] = [
            {"PasswordParam": v["password_param"], "Url": v["url"], "Username": v["username"]}
            for v in sources if v
        ]
    return req


def expand_vpc(vpc: dict) -> dict:
    out = {"SubnetIds": vpc.get("subnet_ids") or []}
    if vpc.get("security_group_ids"):
        out["SecurityGroupIds"] = vpc["security_group_ids"]
    return out


def flatten_sources(sources: list | None) -> list[dict]:
    return [
        {
            "password_param": v.get("PasswordParam", ""),
            "url": v.get("Url", ""),
            "username": v.get("Username", ""),
        }
        for v in sources or []
    ]

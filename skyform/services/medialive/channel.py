"""
aws_medialive_channel: a MediaLive channel.

Encoder settings and per-attachment input settings are free-form
snake_case mappings mirroring the API's structures, e.g.

    encoder_settings:
      timecode_config:
        source: EMBEDDED
      video_descriptions:
        - name: video
          codec_settings:
            h264_settings:
              bitrate: 5000000
"""

import logging
import uuid

from botocore.exceptions import BotoCoreError, ClientError

from skyform import errs
from skyform.errors import NotFoundError, ResourceOperationError
from skyform.schema import TYPE_BOOL, TYPE_LIST, TYPE_MAP, TYPE_STRING, Resource, Schema
from skyform.services.medialive.flex import (
    expand_settings,
    first_block,
    flatten_settings,
    is_subset,
)
from skyform.services.medialive.tags import update_tags
from skyform.tags import merged_tags, set_tags_out, tags_schema, tags_schema_computed
from skyform.validation import string_in_slice, valid_arn
from skyform.waiter import wait

log = logging.getLogger(__name__)

ERR_CODE_NOT_FOUND = "NotFoundException"
STATE_RUNNING = "RUNNING"

CHANNEL_CLASSES = ["STANDARD", "SINGLE_PIPELINE"]
LOG_LEVELS = ["ERROR", "WARNING", "INFO", "DEBUG", "DISABLED"]
INPUT_CODECS = ["MPEG2", "AVC", "HEVC"]
INPUT_RESOLUTIONS = ["SD", "HD", "UHD"]
INPUT_MAXIMUM_BITRATES = ["MAX_10_MBPS", "MAX_20_MBPS", "MAX_50_MBPS"]
CDI_INPUT_RESOLUTIONS = ["SD", "HD", "FHD", "UHD"]
MAINTENANCE_DAYS = ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"]


def _strings(**kwargs) -> Schema:
    return Schema(type=TYPE_LIST, elem=Schema(type=TYPE_STRING), **kwargs)


def resource_channel() -> Resource:
    return Resource(
        schema={
            "arn": Schema(type=TYPE_STRING, computed=True),
            "channel_id": Schema(type=TYPE_STRING, computed=True),
            "cdi_input_specification": Schema(
                type=TYPE_LIST,
                optional=True,
                max_items=1,
                elem=Resource(schema={
                    "resolution": Schema(
                        type=TYPE_STRING, required=True, validate=string_in_slice(CDI_INPUT_RESOLUTIONS),
                    ),
                }),
            ),
            "channel_class": Schema(
                type=TYPE_STRING,
                required=True,
                force_new=True,
                validate=string_in_slice(CHANNEL_CLASSES),
            ),
            "destinations": Schema(
                type=TYPE_LIST,
                required=True,
                min_items=1,
                elem=Resource(schema={
                    "id": Schema(type=TYPE_STRING, required=True),
                    "media_package_settings": Schema(
                        type=TYPE_LIST,
                        optional=True,
                        elem=Resource(schema={
                            "channel_id": Schema(type=TYPE_STRING, required=True),
                        }),
                    ),
                    "multiplex_settings": Schema(
                        type=TYPE_LIST,
                        optional=True,
                        max_items=1,
                        elem=Resource(schema={
                            "multiplex_id": Schema(type=TYPE_STRING, required=True),
                            "program_name": Schema(type=TYPE_STRING, required=True),
                        }),
                    ),
                    "settings": Schema(
                        type=TYPE_LIST,
                        optional=True,
                        elem=Resource(schema={
                            "password_param": Schema(type=TYPE_STRING, optional=True),
                            "stream_name": Schema(type=TYPE_STRING, optional=True),
                            "url": Schema(type=TYPE_STRING, optional=True),
                            "username": Schema(type=TYPE_STRING, optional=True),
                        }),
                    ),
                }),
            ),
            "encoder_settings": Schema(type=TYPE_MAP, required=True),
            "input_attachments": Schema(
                type=TYPE_LIST,
                required=True,
                min_items=1,
                elem=Resource(schema={
                    "input_attachment_name": Schema(type=TYPE_STRING, required=True),
                    "input_id": Schema(type=TYPE_STRING, required=True),
                    "input_settings": Schema(type=TYPE_MAP, optional=True),
                    "automatic_input_failover_settings": Schema(type=TYPE_MAP, optional=True),
                }),
            ),
            "input_specification": Schema(
                type=TYPE_LIST,
                required=True,
                min_items=1,
                max_items=1,
                elem=Resource(schema={
                    "codec": Schema(type=TYPE_STRING, required=True, validate=string_in_slice(INPUT_CODECS)),
                    "input_resolution": Schema(
                        type=TYPE_STRING, required=True, validate=string_in_slice(INPUT_RESOLUTIONS),
                    ),
                    "maximum_bitrate": Schema(
                        type=TYPE_STRING, required=True, validate=string_in_slice(INPUT_MAXIMUM_BITRATES),
                    ),
                }),
            ),
            "log_level": Schema(
                type=TYPE_STRING, optional=True, computed=True, validate=string_in_slice(LOG_LEVELS),
            ),
            "maintenance": Schema(
                type=TYPE_LIST,
                optional=True,
                computed=True,
                max_items=1,
                elem=Resource(schema={
                    "maintenance_day": Schema(
                        type=TYPE_STRING, required=True, validate=string_in_slice(MAINTENANCE_DAYS),
                    ),
                    "maintenance_start_time": Schema(type=TYPE_STRING, required=True),
                }),
            ),
            "name": Schema(type=TYPE_STRING, required=True),
            "role_arn": Schema(type=TYPE_STRING, optional=True, validate=valid_arn),
            "start_channel": Schema(type=TYPE_BOOL, optional=True, default=False),
            "vpc": Schema(
                type=TYPE_LIST,
                optional=True,
                force_new=True,
                max_items=1,
                elem=Resource(schema={
                    "availability_zones": _strings(computed=True),
                    "network_interface_ids": _strings(computed=True),
                    "public_address_allocation_ids": _strings(required=True),
                    "security_group_ids": _strings(optional=True, computed=True, max_items=5),
                    "subnet_ids": _strings(required=True),
                }),
            ),
            "tags": tags_schema(),
            "tags_all": tags_schema_computed(),
        },
        create=resource_channel_create,
        read=resource_channel_read,
        update=resource_channel_update,
        delete=resource_channel_delete,
        importable=True,
        timeouts={"create": 15 * 60, "update": 15 * 60, "delete": 15 * 60},
    )


def resource_channel_create(d, meta) -> None:
    conn = meta.medialive_conn()

    req = {
        "Name": d.get("name"),
        "ChannelClass": d.get("channel_class"),
        "RequestId": str(uuid.uuid4()),
    }
    req.update(expand_channel_settings(d))
    maintenance = first_block(d.get("maintenance"))
    if maintenance:
        req["Maintenance"] = expand_maintenance(maintenance)
    vpc = first_block(d.get("vpc"))
    if vpc:
        req["Vpc"] = expand_vpc(vpc)
    tags = merged_tags(d, meta)
    if tags:
        req["Tags"] = tags

    log.debug("Creating MediaLive channel: %s", req)
    try:
        resp = conn.create_channel(**req)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"creating MediaLive channel ({d.get('name')}): {err}") from err

    d.set_id(resp["Channel"]["Id"])

    timeout = d.resource.timeout("create")
    wait(conn, "channel_created", timeout, f"MediaLive channel ({d.id}) create", ChannelId=d.id)

    if d.get("start_channel"):
        start_channel(conn, d.id, timeout)

    resource_channel_read(d, meta)


def resource_channel_read(d, meta) -> None:
    conn = meta.medialive_conn()

    try:
        out = find_channel_by_id(conn, d.id)
    except NotFoundError:
        log.warning("MediaLive channel (%s) not found, removing from state", d.id)
        d.set_id("")
        return
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"reading MediaLive channel ({d.id}): {err}") from err

    d.set("arn", out.get("Arn"))
    d.set("channel_id", out.get("Id"))
    d.set("channel_class", out.get("ChannelClass"))
    d.set("name", out.get("Name"))
    d.set("role_arn", out.get("RoleArn"))
    d.set("log_level", out.get("LogLevel"))
    d.set("cdi_input_specification", flatten_cdi_input_specification(out.get("CdiInputSpecification")))
    d.set("input_specification", flatten_input_specification(out.get("InputSpecification")))
    d.set("input_attachments", flatten_input_attachments(
        out.get("InputAttachments"), d.get("input_attachments"),
    ))
    d.set("destinations", flatten_destinations(out.get("Destinations")))
    d.set("maintenance", flatten_maintenance(out.get("Maintenance")))
    d.set("vpc", flatten_vpc(out.get("Vpc")))

    remote_encoder = flatten_settings(out.get("EncoderSettings") or {})
    if not is_subset(d.get("encoder_settings"), remote_encoder):
        d.set("encoder_settings", remote_encoder)

    set_tags_out(d, meta, out.get("Tags"))


def resource_channel_update(d, meta) -> None:
    conn = meta.medialive_conn()
    timeout = d.resource.timeout("update")

    if d.has_changes_except("tags", "tags_all", "start_channel"):
        running = channel_running(conn, d.id)
        if running:
            stop_channel(conn, d.id, timeout)

        req = {"ChannelId": d.id, "Name": d.get("name")}
        req.update(expand_channel_settings(d))
        maintenance = first_block(d.get("maintenance"))
        if maintenance and d.has_change("maintenance"):
            req["Maintenance"] = expand_maintenance(maintenance)

        log.debug("Updating MediaLive channel: %s", req)
        try:
            conn.update_channel(**req)
        except (ClientError, BotoCoreError) as err:
            raise ResourceOperationError(f"updating MediaLive channel ({d.id}): {err}") from err

        # an updated channel settles back to IDLE
        wait(conn, "channel_stopped", timeout, f"MediaLive channel ({d.id}) update", ChannelId=d.id)

        if running and d.get("start_channel"):
            start_channel(conn, d.id, timeout)

    old_tags, _ = d.get_change("tags_all")
    new_tags = merged_tags(d, meta)
    if old_tags != new_tags:
        update_tags(conn, d.get("arn"), old_tags, new_tags)

    if d.has_change("start_channel"):
        running = channel_running(conn, d.id)
        if d.get("start_channel") and not running:
            start_channel(conn, d.id, timeout)
        elif not d.get("start_channel") and running:
            stop_channel(conn, d.id, timeout)

    resource_channel_read(d, meta)


def resource_channel_delete(d, meta) -> None:
    conn = meta.medialive_conn()
    timeout = d.resource.timeout("delete")

    log.debug("Deleting MediaLive channel: %s", d.id)
    try:
        out = find_channel_by_id(conn, d.id)
    except NotFoundError:
        return
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"deleting MediaLive channel ({d.id}): {err}") from err

    if out.get("State") == STATE_RUNNING:
        stop_channel(conn, d.id, timeout)

    try:
        conn.delete_channel(ChannelId=d.id)
    except (ClientError, BotoCoreError) as err:
        if errs.is_a(err, ERR_CODE_NOT_FOUND):
            return
        raise ResourceOperationError(f"deleting MediaLive channel ({d.id}): {err}") from err

    wait(conn, "channel_deleted", timeout, f"MediaLive channel ({d.id}) delete", ChannelId=d.id)


def start_channel(conn, channel_id: str, timeout: int) -> None:
    log.debug("Starting MediaLive channel: %s", channel_id)
    try:
        conn.start_channel(ChannelId=channel_id)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"starting MediaLive channel ({channel_id}): {err}") from err
    wait(conn, "channel_running", timeout, f"MediaLive channel ({channel_id}) start", ChannelId=channel_id)


def stop_channel(conn, channel_id: str, timeout: int) -> None:
    log.debug("Stopping MediaLive channel: %s", channel_id)
    try:
        conn.stop_channel(ChannelId=channel_id)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"stopping MediaLive channel ({channel_id}): {err}") from err
    wait(conn, "channel_stopped", timeout, f"MediaLive channel ({channel_id}) stop", ChannelId=channel_id)


def channel_running(conn, channel_id: str) -> bool:
    try:
        out = find_channel_by_id(conn, channel_id)
    except (NotFoundError, ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"updating MediaLive channel ({channel_id}): {err}") from err
    return out.get("State") == STATE_RUNNING


def find_channel_by_id(conn, channel_id: str) -> dict:
    try:
        out = conn.describe_channel(ChannelId=channel_id)
    except ClientError as err:
        if errs.is_a(err, ERR_CODE_NOT_FOUND):
            raise NotFoundError(f"channel {channel_id} not found") from err
        raise

    if not out or out.get("State") == "DELETED":
        raise NotFoundError(f"channel {channel_id} not found")

    return out


def expand_channel_settings(d) -> dict:
    """Request fields shared by CreateChannel and UpdateChannel."""
    req = {
        "Destinations": expand_destinations(d.get("destinations")),
        "EncoderSettings": expand_settings(d.get("encoder_settings")),
        "InputAttachments": expand_input_attachments(d.get("input_attachments")),
        "InputSpecification": expand_input_specification(first_block(d.get("input_specification"))),
    }
    role_arn, ok = d.get_ok("role_arn")
    if ok:
        req["RoleArn"] = role_arn
    log_level, ok = d.get_ok("log_level")
    if ok:
        req["LogLevel"] = log_level
    cdi = first_block(d.get("cdi_input_specification"))
    if cdi:
        req["CdiInputSpecification"] = {"Resolution": cdi["resolution"]}
    return req


def expand_input_specification(spec: dict | None) -> dict:
    if not spec:
        return {}
    return {
        "Codec": spec["codec"],
        "Resolution": spec["input_resolution"],
        "MaximumBitrate": spec["maximum_bitrate"],
    }


def flatten_input_specification(spec: dict | None) -> list[dict]:
    if not spec:
        return []
    return [{
        "codec": spec.get("Codec", ""),
        "input_resolution": spec.get("Resolution", ""),
        "maximum_bitrate": spec.get("MaximumBitrate", ""),
    }]


def flatten_cdi_input_specification(spec: dict | None) -> list[dict]:
    if not spec:
        return []
    return [{"resolution": spec.get("Resolution", "")}]


def expand_input_attachments(attachments: list | None) -> list[dict]:
    out = []
    for v in attachments or []:
        if not v:
            continue
        item = {
            "InputAttachmentName": v["input_attachment_name"],
            "InputId": v["input_id"],
        }
        if v.get("input_settings"):
            item["InputSettings"] = expand_settings(v["input_settings"])
        if v.get("automatic_input_failover_settings"):
            item["AutomaticInputFailoverSettings"] = expand_settings(
                v["automatic_input_failover_settings"]
            )
        out.append(item)
    return out


def flatten_input_attachments(attachments: list | None, configured: list | None) -> list[dict]:
    configured = configured or []
    out = []
    for index, v in enumerate(attachments or []):
        prior = configured[index] if index < len(configured) and configured[index] else {}
        item = {
            "input_attachment_name": v.get("InputAttachmentName", ""),
            "input_id": v.get("InputId", ""),
            "input_settings": {},
            "automatic_input_failover_settings": {},
        }
        for key, api_key in (
            ("input_settings", "InputSettings"),
            ("automatic_input_failover_settings", "AutomaticInputFailoverSettings"),
        ):
            remote = flatten_settings(v.get(api_key) or {})
            item[key] = prior.get(key) if is_subset(prior.get(key) or {}, remote) else remote
            if item[key] is None:
                item[key] = {}
        out.append(item)
    return out


def expand_destinations(destinations: list | None) -> list[dict]:
    out = []
    for v in destinations or []:
        if not v:
            continue
        item = {"Id": v["id"]}
        if v.get("media_package_settings"):
            item["MediaPackageSettings"] = [
                {"ChannelId": s["channel_id"]} for s in v["media_package_settings"] if s
            ]
        multiplex = first_block(v.get("multiplex_settings"))
        if multiplex:
            item["MultiplexSettings"] = {
                "MultiplexId": multiplex["multiplex_id"],
                "ProgramName": multiplex["program_name"],
            }
        if v.get("settings"):
            item["Settings"] = [
                {
                    api_key: s[key]
                    for key, api_key in (
                        ("password_param", "PasswordParam"),
                        ("stream_name", "StreamName"),
                        ("url", "Url"),
                        ("username", "Username"),
                    )
                    if s.get(key)
                }
                for s in v["settings"] if s
            ]
        out.append(item)
    return out


def flatten_destinations(destinations: list | None) -> list[dict]:
    out = []
    for v in destinations or []:
        multiplex = v.get("MultiplexSettings")
        out.append({
            "id": v.get("Id", ""),
            "media_package_settings": [
                {"channel_id": s.get("ChannelId", "")} for s in v.get("MediaPackageSettings") or []
            ],
            "multiplex_settings": [{
                "multiplex_id": multiplex.get("MultiplexId", ""),
                "program_name": multiplex.get("ProgramName", ""),
            }] if multiplex else [],
            "settings": [
                {
                    "password_param": s.get("PasswordParam", ""),
                    "stream_name": s.get("StreamName", ""),
                    "url": s.get("Url", ""),
                    "username": s.get("Username", ""),
                }
                for s in v.get("Settings") or []
            ],
        })
    return out


def expand_maintenance(maintenance: dict) -> dict:
    return {
        "MaintenanceDay": maintenance["maintenance_day"],
        "MaintenanceStartTime": maintenance["maintenance_start_time"],
    }


def flatten_maintenance(maintenance: dict | None) -> list[dict]:
    if not maintenance:
        return []
    return [{
        "maintenance_day": maintenance.get("MaintenanceDay", ""),
        "maintenance_start_time": maintenance.get("MaintenanceStartTime", ""),
    }]


def expand_vpc(vpc: dict) -> dict:
    out = {
        "PublicAddressAllocationIds": vpc.get("public_address_allocation_ids") or [],
        "SubnetIds": vpc.get("subnet_ids") or [],
    }
    if vpc.get("security_group_ids"):
        out["SecurityGroupIds"] = vpc["security_group_ids"]
    return out


def flatten_vpc(vpc: dict | None) -> list[dict]:
    if not vpc:
        return []
    return [{
        "availability_zones": vpc.get("AvailabilityZones") or [],
        "network_interface_ids": vpc.get("NetworkInterfaceIds") or [],
        "public_address_allocation_ids": vpc.get("PublicAddressAllocationIds") or [],
        "security_group_ids": vpc.get("SecurityGroupIds") or [],
        "subnet_ids": vpc.get("SubnetIds") or [],
    }]

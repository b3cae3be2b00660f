"""
aws_medialive_multiplex: a MediaLive multiplex (MPTS) spanning two
availability zones.
"""

import logging
import uuid

from botocore.exceptions import BotoCoreError, ClientError

from skyform import errs
from skyform.errors import NotFoundError, ResourceOperationError
from skyform.schema import TYPE_BOOL, TYPE_INT, TYPE_LIST, TYPE_STRING, Resource, Schema
from skyform.services.medialive.flex import first_block
from skyform.services.medialive.tags import update_tags
from skyform.tags import merged_tags, set_tags_out, tags_schema, tags_schema_computed
from skyform.validation import int_between
from skyform.waiter import wait

log = logging.getLogger(__name__)

ERR_CODE_NOT_FOUND = "NotFoundException"
STATE_RUNNING = "RUNNING"


def resource_multiplex() -> Resource:
    return Resource(
        schema={
            "arn": Schema(type=TYPE_STRING, computed=True),
            "availability_zones": Schema(
                type=TYPE_LIST,
                required=True,
                force_new=True,
                min_items=2,
                max_items=2,
                elem=Schema(type=TYPE_STRING),
            ),
            "multiplex_settings": Schema(
                type=TYPE_LIST,
                optional=True,
                max_items=1,
                elem=Resource(schema={
                    "transport_stream_bitrate": Schema(
                        type=TYPE_INT, required=True, validate=int_between(1000000, 100000000),
                    ),
                    "transport_stream_reserved_bitrate": Schema(
                        type=TYPE_INT, optional=True, computed=True,
                    ),
                    "transport_stream_id": Schema(type=TYPE_INT, required=True),
                    "maximum_video_buffer_delay_milliseconds": Schema(
                        type=TYPE_INT, optional=True, computed=True, validate=int_between(800, 3000),
                    ),
                }),
            ),
            "name": Schema(type=TYPE_STRING, required=True),
            "start_multiplex": Schema(type=TYPE_BOOL, optional=True, default=False),
            "tags": tags_schema(),
            "tags_all": tags_schema_computed(),
        },
        create=resource_multiplex_create,
        read=resource_multiplex_read,
        update=resource_multiplex_update,
        delete=resource_multiplex_delete,
        importable=True,
        timeouts={"create": 1800, "update": 1800, "delete": 1800},
    )


def resource_multiplex_create(d, meta) -> None:
    conn = meta.medialive_conn()

    req = {
        "AvailabilityZones": d.get("availability_zones"),
        "Name": d.get("name"),
        "RequestId": str(uuid.uuid4()),
    }
    settings = first_block(d.get("multiplex_settings"))
    if settings:
        req["MultiplexSettings"] = expand_multiplex_settings(settings)
    tags = merged_tags(d, meta)
    if tags:
        req["Tags"] = tags

    log.debug("Creating MediaLive multiplex: %s", req)
    try:
        resp = conn.create_multiplex(**req)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"creating MediaLive multiplex ({d.get('name')}): {err}") from err

    d.set_id(resp["Multiplex"]["Id"])

    timeout = d.resource.timeout("create")
    wait(conn, "multiplex_created", timeout, f"MediaLive multiplex ({d.id}) create", MultiplexId=d.id)

    if d.get("start_multiplex"):
        start_multiplex(conn, d.id, timeout)

    resource_multiplex_read(d, meta)


def resource_multiplex_read(d, meta) -> None:
    conn = meta.medialive_conn()

    try:
        out = find_multiplex_by_id(conn, d.id)
    except NotFoundError:
        log.warning("MediaLive multiplex (%s) not found, removing from state", d.id)
        d.set_id("")
        return
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"reading MediaLive multiplex ({d.id}): {err}") from err

    d.set("arn", out.get("Arn"))
    d.set("availability_zones", out.get("AvailabilityZones") or [])
    d.set("multiplex_settings", flatten_multiplex_settings(out.get("MultiplexSettings")))
    d.set("name", out.get("Name"))
    set_tags_out(d, meta, out.get("Tags"))


def resource_multiplex_update(d, meta) -> None:
    conn = meta.medialive_conn()
    timeout = d.resource.timeout("update")

    if d.has_changes_except("tags", "tags_all", "start_multiplex"):
        running = multiplex_running(conn, d.id)
        if running:
            stop_multiplex(conn, d.id, timeout)

        req = {"MultiplexId": d.id, "Name": d.get("name")}
        settings = first_block(d.get("multiplex_settings"))
        if settings:
            req["MultiplexSettings"] = expand_multiplex_settings(settings)

        log.debug("Updating MediaLive multiplex: %s", req)
        try:
            conn.update_multiplex(**req)
        except (ClientError, BotoCoreError) as err:
            raise ResourceOperationError(f"updating MediaLive multiplex ({d.id}): {err}") from err

        wait(conn, "multiplex_stopped", timeout, f"MediaLive multiplex ({d.id}) update", MultiplexId=d.id)

        if running and d.get("start_multiplex"):
            start_multiplex(conn, d.id, timeout)

    old_tags, _ = d.get_change("tags_all")
    new_tags = merged_tags(d, meta)
    if old_tags != new_tags:
        update_tags(conn, d.get("arn"), old_tags, new_tags)

    if d.has_change("start_multiplex"):
        running = multiplex_running(conn, d.id)
        if d.get("start_multiplex") and not running:
            start_multiplex(conn, d.id, timeout)
        elif not d.get("start_multiplex") and running:
            stop_multiplex(conn, d.id, timeout)

    resource_multiplex_read(d, meta)


def resource_multiplex_delete(d, meta) -> None:
    conn = meta.medialive_conn()
    timeout = d.resource.timeout("delete")

    log.debug("Deleting MediaLive multiplex: %s", d.id)
    try:
        out = find_multiplex_by_id(conn, d.id)
    except NotFoundError:
        return
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"deleting MediaLive multiplex ({d.id}): {err}") from err

    if out.get("State") == STATE_RUNNING:
        stop_multiplex(conn, d.id, timeout)

    try:
        conn.delete_multiplex(MultiplexId=d.id)
    except (ClientError, BotoCoreError) as err:
        if errs.is_a(err, ERR_CODE_NOT_FOUND):
            return
        raise ResourceOperationError(f"deleting MediaLive multiplex ({d.id}): {err}") from err

    wait(conn, "multiplex_deleted", timeout, f"MediaLive multiplex ({d.id}) delete", MultiplexId=d.id)


def start_multiplex(conn, multiplex_id: str, timeout: int) -> None:
    log.debug("Starting MediaLive multiplex: %s", multiplex_id)
    try:
        conn.start_multiplex(MultiplexId=multiplex_id)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"starting MediaLive multiplex ({multiplex_id}): {err}") from err
    wait(conn, "multiplex_running", timeout, f"MediaLive multiplex ({multiplex_id}) start",
         MultiplexId=multiplex_id)


def stop_multiplex(conn, multiplex_id: str, timeout: int) -> None:
    log.debug("Stopping MediaLive multiplex: %s", multiplex_id)
    try:
        conn.stop_multiplex(MultiplexId=multiplex_id)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"stopping MediaLive multiplex ({multiplex_id}): {err}") from err
    wait(conn, "multiplex_stopped", timeout, f"MediaLive multiplex ({multiplex_id}) stop",
         MultiplexId=multiplex_id)


def multiplex_running(conn, multiplex_id: str) -> bool:
    try:
        out = find_multiplex_by_id(conn, multiplex_id)
    except (NotFoundError, ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"updating MediaLive multiplex ({multiplex_id}): {err}") from err
    return out.get("State") == STATE_RUNNING


def find_multiplex_by_id(conn, multiplex_id: str) -> dict:
    try:
        out = conn.describe_multiplex(MultiplexId=multiplex_id)
    except ClientError as err:
        if errs.is_a(err, ERR_CODE_NOT_FOUND):
            raise NotFoundError(f"multiplex {multiplex_id} not found") from err
        raise

    if not out or out.get("State") == "DELETED":
        raise NotFoundError(f"multiplex {multiplex_id} not found")

    return out


def expand_multiplex_settings(settings: dict) -> dict:
    out = {
        "TransportStreamBitrate": settings["transport_stream_bitrate"],
        "TransportStreamId": settings["transport_stream_id"],
    }
    if settings.get("transport_stream_reserved_bitrate"):
        out["TransportStreamReservedBitrate"] = settings["transport_stream_reserved_bitrate"]
    if settings.get("maximum_video_buffer_delay_milliseconds"):
        out["MaximumVideoBufferDelayMilliseconds"] = settings["maximum_video_buffer_delay_milliseconds"]
    return out


def flatten_multiplex_settings(settings: dict | None) -> list[dict]:
    if not settings:
        return []
    return [{
        "transport_stream_bitrate": settings.get("TransportStreamBitrate", 0),
        "transport_stream_reserved_bitrate": settings.get("TransportStreamReservedBitrate", 0),
        "transport_stream_id": settings.get("TransportStreamId", 0),
        "maximum_video_buffer_delay_milliseconds": settings.get("MaximumVideoBufferDelayMilliseconds", 0),
    }]

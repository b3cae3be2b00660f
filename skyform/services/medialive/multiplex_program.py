"""
aws_medialive_multiplex_program: a program inside a MediaLive multiplex.

Implemented as a class-based (framework) resource; its type name comes
from `metadata()` rather than from the registration table.
"""

import logging
import uuid

from botocore.exceptions import BotoCoreError, ClientError

from skyform import errs
from skyform.errors import NotFoundError, ResourceOperationError
from skyform.schema import TYPE_INT, TYPE_LIST, TYPE_STRING, Resource, Schema
from skyform.services.medialive.flex import first_block
from skyform.types import FrameworkResource
from skyform.validation import string_in_slice

log = logging.getLogger(__name__)

ERR_CODE_NOT_FOUND = "NotFoundException"

PREFERRED_CHANNEL_PIPELINES = ["CURRENTLY_ACTIVE", "PIPELINE_0", "PIPELINE_1"]


def new_resource_multiplex_program() -> "ResourceMultiplexProgram":
    return ResourceMultiplexProgram()


class ResourceMultiplexProgram(FrameworkResource):
    type_name = "aws_medialive_multiplex_program"
    timeouts = {"create": 30 * 60}

    def schema(self) -> dict[str, Schema]:
        statmux_settings = Resource(schema={
            "minimum_bitrate": Schema(type=TYPE_INT, optional=True, computed=True),
            "maximum_bitrate": Schema(type=TYPE_INT, optional=True, computed=True),
            "priority": Schema(type=TYPE_INT, optional=True, computed=True),
        })
        return {
            "multiplex_id": Schema(type=TYPE_STRING, required=True, force_new=True),
            "program_name": Schema(type=TYPE_STRING, required=True, force_new=True),
            "multiplex_program_settings": Schema(
                type=TYPE_LIST,
                required=True,
                min_items=1,
                max_items=1,
                elem=Resource(schema={
                    "program_number": Schema(type=TYPE_INT, required=True),
                    "preferred_channel_pipeline": Schema(
                        type=TYPE_STRING,
                        required=True,
                        validate=string_in_slice(PREFERRED_CHANNEL_PIPELINES),
                    ),
                    "service_descriptor": Schema(
                        type=TYPE_LIST,
                        optional=True,
                        max_items=1,
                        elem=Resource(schema={
                            "provider_name": Schema(type=TYPE_STRING, required=True),
                            "service_name": Schema(type=TYPE_STRING, required=True),
                        }),
                    ),
                    "video_settings": Schema(
                        type=TYPE_LIST,
                        optional=True,
                        computed=True,
                        max_items=1,
                        elem=Resource(schema={
                            "constant_bitrate": Schema(type=TYPE_INT, optional=True, computed=True),
                            "statmux_settings": Schema(
                                type=TYPE_LIST,
                                optional=True,
                                computed=True,
                                max_items=1,
                                elem=statmux_settings,
                            ),
                        }),
                    ),
                }),
            ),
        }

    def create(self, d, meta) -> None:
        conn = meta.medialive_conn()

        multiplex_id = d.get("multiplex_id")
        program_name = d.get("program_name")

        req = {
            "MultiplexId": multiplex_id,
            "ProgramName": program_name,
            "RequestId": str(uuid.uuid4()),
            "MultiplexProgramSettings": expand_multiplex_program_settings(
                d.get("multiplex_program_settings")
            ),
        }

        log.debug("Creating MediaLive multiplex program: %s", req)
        try:
            conn.create_multiplex_program(**req)
        except (ClientError, BotoCoreError) as err:
            raise ResourceOperationError(
                f"creating MediaLive multiplex program ({program_name}): {err}"
            ) from err

        d.set_id(multiplex_program_id(program_name, multiplex_id))
        self.read(d, meta)

    def read(self, d, meta) -> None:
        conn = meta.medialive_conn()

        try:
            program_name, multiplex_id = parse_multiplex_program_id(d.id)
        except ValueError as err:
            raise ResourceOperationError(f"reading MediaLive multiplex program: {err}") from err

        try:
            out = find_multiplex_program_by_id(conn, multiplex_id, program_name)
        except NotFoundError:
            log.warning("MediaLive multiplex program (%s) not found, removing from state", d.id)
            d.set_id("")
            return
        except (ClientError, BotoCoreError) as err:
            raise ResourceOperationError(
                f"reading MediaLive multiplex program ({d.id}): {err}"
            ) from err

        d.set("multiplex_id", multiplex_id)
        d.set("program_name", out.get("ProgramName") or program_name)
        d.set(
            "multiplex_program_settings",
            flatten_multiplex_program_settings(out.get("MultiplexProgramSettings")),
        )

    def update(self, d, meta) -> None:
        conn = meta.medialive_conn()

        if d.has_change("multiplex_program_settings"):
            program_name, multiplex_id = parse_multiplex_program_id(d.id)
            req = {
                "MultiplexId": multiplex_id,
                "ProgramName": program_name,
                "MultiplexProgramSettings": expand_multiplex_program_settings(
                    d.get("multiplex_program_settings")
                ),
            }

            log.debug("Updating MediaLive multiplex program: %s", req)
            try:
                conn.update_multiplex_program(**req)
            except (ClientError, BotoCoreError) as err:
                raise ResourceOperationError(
                    f"updating MediaLive multiplex program ({d.id}): {err}"
                ) from err

        self.read(d, meta)

    def delete(self, d, meta) -> None:
        conn = meta.medialive_conn()

        try:
            program_name, multiplex_id = parse_multiplex_program_id(d.id)
        except ValueError as err:
            raise ResourceOperationError(f"deleting MediaLive multiplex program: {err}") from err

        log.debug("Deleting MediaLive multiplex program: %s", d.id)
        try:
            conn.delete_multiplex_program(MultiplexId=multiplex_id, ProgramName=program_name)
        except (ClientError, BotoCoreError) as err:
            if errs.is_a(err, ERR_CODE_NOT_FOUND):
                return
            raise ResourceOperationError(
                f"deleting MediaLive multiplex program ({d.id}): {err}"
            ) from err


def multiplex_program_id(program_name: str, multiplex_id: str) -> str:
    return f"{program_name}/{multiplex_id}"


def parse_multiplex_program_id(resource_id: str) -> tuple[str, str]:
    """
    Split "program_name/multiplex_id".

    Raises:
        ValueError: If the id does not have exactly two non-empty parts
    """
    parts = resource_id.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(
            f"unexpected format for ID ({resource_id}), expected program_name/multiplex_id"
        )
    return parts[0], parts[1]


def find_multiplex_program_by_id(conn, multiplex_id: str, program_name: str) -> dict:
    try:
        out = conn.describe_multiplex_program(MultiplexId=multiplex_id, ProgramName=program_name)
    except ClientError as err:
        if errs.is_a(err, ERR_CODE_NOT_FOUND):
            raise NotFoundError(
                f"multiplex program {program_name} in {multiplex_id} not found"
            ) from err
        raise

    if not out:
        raise NotFoundError(f"multiplex program {program_name} in {multiplex_id} not found")

    return out


def expand_multiplex_program_settings(blocks: list | None) -> dict:
    settings = first_block(blocks) or {}
    out = {
        "ProgramNumber": settings.get("program_number", 0),
        "PreferredChannelPipeline": settings.get("preferred_channel_pipeline", ""),
    }

    descriptor = first_block(settings.get("service_descriptor"))
    if descriptor:
        out["ServiceDescriptor"] = {
            "ProviderName": descriptor["provider_name"],
            "ServiceName": descriptor["service_name"],
        }

    video = first_block(settings.get("video_settings"))
    if video:
        video_out = {}
        if video.get("constant_bitrate"):
            video_out["ConstantBitrate"] = video["constant_bitrate"]
        statmux = first_block(video.get("statmux_settings"))
        if statmux:
            statmux_out = {
                api_key: statmux[key]
                for key, api_key in (
                    ("minimum_bitrate", "MinimumBitrate"),
                    ("maximum_bitrate", "MaximumBitrate"),
                    ("priority", "Priority"),
                )
                if statmux.get(key)
            }
            if statmux_out:
                video_out["StatmuxSettings"] = statmux_out
        if video_out:
            out["VideoSettings"] = video_out

    return out


def flatten_multiplex_program_settings(settings: dict | None) -> list[dict]:
    if not settings:
        return []

    out = {
        "program_number": settings.get("ProgramNumber", 0),
        "preferred_channel_pipeline": settings.get("PreferredChannelPipeline", ""),
        "service_descriptor": [],
        "video_settings": [],
    }

    descriptor = settings.get("ServiceDescriptor")
    if descriptor:
        out["service_descriptor"] = [{
            "provider_name": descriptor.get("ProviderName", ""),
            "service_name": descriptor.get("ServiceName", ""),
        }]

    video = settings.get("VideoSettings")
    if video:
        statmux = video.get("StatmuxSettings")
        out["video_settings"] = [{
            "constant_bitrate": video.get("ConstantBitrate", 0),
            "statmux_settings": [{
                "minimum_bitrate": statmux.get("MinimumBitrate", 0),
                "maximum_bitrate": statmux.get("MaximumBitrate", 0),
                "priority": statmux.get("Priority", 0),
            }] if statmux else [],
        }]

    return [out]

"""
aws_macie_s3_bucket_association: associate an S3 bucket (and optional
prefix) with Amazon Macie Classic for data classification.
"""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from skyform import errs
from skyform.errors import ResourceOperationError
from skyform.schema import TYPE_LIST, TYPE_STRING, Resource, Schema
from skyform.validation import string_in_slice, valid_account_id

log = logging.getLogger(__name__)

S3_CONTINUOUS_CLASSIFICATION_TYPE_FULL = "FULL"
S3_ONE_TIME_CLASSIFICATION_TYPE_FULL = "FULL"
S3_ONE_TIME_CLASSIFICATION_TYPE_NONE = "NONE"

ERR_CODE_INVALID_INPUT_EXCEPTION = "InvalidInputException"


def resource_s3_bucket_association() -> Resource:
    return Resource(
        schema={
            "bucket_name": Schema(
                type=TYPE_STRING,
                required=True,
                force_new=True,
            ),
            "prefix": Schema(
                type=TYPE_STRING,
                optional=True,
                force_new=True,
            ),
            "member_account_id": Schema(
                type=TYPE_STRING,
                optional=True,
                force_new=True,
                validate=valid_account_id,
            ),
            "classification_type": Schema(
                type=TYPE_LIST,
                optional=True,
                computed=True,
                max_items=1,
                elem=Resource(
                    schema={
                        "continuous": Schema(
                            type=TYPE_STRING,
                            optional=True,
                            default=S3_CONTINUOUS_CLASSIFICATION_TYPE_FULL,
                            validate=string_in_slice([S3_CONTINUOUS_CLASSIFICATION_TYPE_FULL]),
                        ),
                        "one_time": Schema(
                            type=TYPE_STRING,
                            optional=True,
                            default=S3_ONE_TIME_CLASSIFICATION_TYPE_NONE,
                            validate=string_in_slice([
                                S3_ONE_TIME_CLASSIFICATION_TYPE_FULL,
                                S3_ONE_TIME_CLASSIFICATION_TYPE_NONE,
                            ]),
                        ),
                    },
                ),
            ),
        },
        create=resource_s3_bucket_association_create,
        read=resource_s3_bucket_association_read,
        update=resource_s3_bucket_association_update,
        delete=resource_s3_bucket_association_delete,
    )


def resource_s3_bucket_association_create(d, meta) -> None:
    conn = meta.macie_conn()

    resource = {
        "BucketName": d.get("bucket_name"),
        "ClassificationType": expand_classification_type(d),
    }
    prefix, ok = d.get_ok("prefix")
    if ok:
        resource["Prefix"] = prefix

    req = {"S3Resources": [resource]}
    member_account_id, ok = d.get_ok("member_account_id")
    if ok:
        req["MemberAccountId"] = member_account_id

    log.debug("Creating Macie S3 bucket association: %s", req)
    try:
        resp = conn.associate_s3_resources(**req)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"creating Macie S3 bucket association: {err}") from err

    failed = resp.get("FailedS3Resources") or []
    if failed:
        raise ResourceOperationError(
            f"creating Macie S3 bucket association: {errs.format_failed_item(failed[0])}"
        )

    d.set_id(f"{d.get('bucket_name')}/{d.get('prefix')}")
    resource_s3_bucket_association_read(d, meta)


def resource_s3_bucket_association_read(d, meta) -> None:
    conn = meta.macie_conn()

    req = {}
    member_account_id, ok = d.get_ok("member_account_id")
    if ok:
        req["MemberAccountId"] = member_account_id

    bucket_name = d.get("bucket_name")
    prefix = d.get("prefix")

    res = None
    try:
        paginator = conn.get_paginator("list_s3_resources")
        for page in paginator.paginate(**req):
            for v in page.get("S3Resources") or []:
                if v.get("BucketName", "") == bucket_name and v.get("Prefix", "") == prefix:
                    res = v
                    break
            if res is not None:
                break
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"listing Macie S3 bucket associations: {err}") from err

    if res is None:
        log.warning("Macie S3 bucket association (%s) not found, removing from state", d.id)
        d.set_id("")
        return

    d.set("classification_type", flatten_classification_type(res.get("ClassificationType")))


def resource_s3_bucket_association_update(d, meta) -> None:
    conn = meta.macie_conn()

    if d.has_change("classification_type"):
        update = {
            "BucketName": d.get("bucket_name"),
            "ClassificationTypeUpdate": expand_classification_type_update(d),
        }
        prefix, ok = d.get_ok("prefix")
        if ok:
            update["Prefix"] = prefix

        req = {"S3ResourcesUpdate": [update]}
        member_account_id, ok = d.get_ok("member_account_id")
        if ok:
            req["MemberAccountId"] = member_account_id

        log.debug("Updating Macie S3 bucket association: %s", req)
        try:
            resp = conn.update_s3_resources(**req)
        except (ClientError, BotoCoreError) as err:
            raise ResourceOperationError(f"updating Macie S3 bucket association: {err}") from err

        failed = resp.get("FailedS3Resources") or []
        if failed:
            raise ResourceOperationError(
                f"updating Macie S3 bucket association: {errs.format_failed_item(failed[0])}"
            )

    resource_s3_bucket_association_read(d, meta)


def resource_s3_bucket_association_delete(d, meta) -> None:
    conn = meta.macie_conn()

    log.debug("Deleting Macie S3 bucket association: %s", d.id)

    resource = {"BucketName": d.get("bucket_name")}
    prefix, ok = d.get_ok("prefix")
    if ok:
        resource["Prefix"] = prefix

    req = {"AssociatedS3Resources": [resource]}
    member_account_id, ok = d.get_ok("member_account_id")
    if ok:
        req["MemberAccountId"] = member_account_id

    try:
        resp = conn.disassociate_s3_resources(**req)
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"deleting Macie S3 bucket association: {err}") from err

    failed = resp.get("FailedS3Resources") or []
    if failed:
        # Already disassociated:
        # {"ErrorCode": "InvalidInputException",
        #  "ErrorMessage": "The request was rejected. The specified S3 resource
        #   (bucket or prefix) is not associated with Macie.",
        #  "FailedItem": {"BucketName": "..."}}
        if errs.failed_item_matches(
            failed[0], ERR_CODE_INVALID_INPUT_EXCEPTION, "is not associated with Macie"
        ):
            return
        raise ResourceOperationError(
            f"deleting Macie S3 bucket association: {errs.format_failed_item(failed[0])}"
        )


def expand_classification_type(d) -> dict[str, str]:
    continuous = S3_CONTINUOUS_CLASSIFICATION_TYPE_FULL
    one_time = S3_ONE_TIME_CLASSIFICATION_TYPE_NONE
    v = d.get("classification_type")
    if v:
        m = v[0] or {}
        continuous = m.get("continuous") or continuous
        one_time = m.get("one_time") or one_time
    return {"Continuous": continuous, "OneTime": one_time}


def expand_classification_type_update(d) -> dict[str, str]:
    # Same shape as ClassificationType, sent under a different request key
    return expand_classification_type(d)


def flatten_classification_type(classification_type: dict | None) -> list[dict[str, str]]:
    if not classification_type:
        return []
    return [{
        "continuous": classification_type.get("Continuous", ""),
        "one_time": classification_type.get("OneTime", ""),
    }]

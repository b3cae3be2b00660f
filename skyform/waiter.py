"""
Waiting on long-running state transitions with boto3 waiters.
"""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from skyform.errors import ResourceOperationError

log = logging.getLogger(__name__)

DEFAULT_DELAY = 5


def wait(conn, waiter_name: str, timeout: int, description: str, delay: int = DEFAULT_DELAY, **params) -> None:
    """
    Block until `waiter_name` succeeds or `timeout` seconds elapse.

    Raises:
        ResourceOperationError: If the waiter fails or times out
    """
    attempts = max(1, timeout // delay)
    log.debug("Waiting for %s (%s, up to %ss)", description, waiter_name, timeout)
    try:
        conn.get_waiter(waiter_name).wait(
            WaiterConfig={"Delay": delay, "MaxAttempts": attempts},
            **params,
        )
    except (ClientError, BotoCoreError) as err:
        raise ResourceOperationError(f"waiting for {description}: {err}") from err

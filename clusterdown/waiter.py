"""
Polling wait for a resource to reach a terminal state.
"""

import time
from typing import Callable, Optional
import logging

from .context import TeardownContext
from .errors import NotFoundError, TeardownTimeoutError
from .models import ResourceHandle, ResourceKind

logger = logging.getLogger(__name__)

VM_STATUS_DOWN = "down"


def wait_until(
    ctx: TeardownContext,
    handle: ResourceHandle,
    target_state: str = VM_STATUS_DOWN,
    timeout: Optional[float] = None,
    poll_interval: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Optional[TeardownTimeoutError]:
    """
    Poll a VM's status until it equals ``target_state``.

    A timeout is returned, not raised: callers log it and carry on with
    removal. A VM that disappears while waiting counts as having arrived.

    Each poll is a single status call without retries, so the wait ends
    at most one request timeout after the ceiling.

    Args:
        ctx: Teardown context
        handle: VM to watch
        target_state: Status to wait for
        timeout: Ceiling in seconds; defaults to settings.vm_stop_timeout
        poll_interval: Seconds between polls; defaults to settings.poll_interval
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        None on success, TeardownTimeoutError if the ceiling was reached
    """
    if handle.kind != ResourceKind.VM:
        return None

    timeout = ctx.settings.vm_stop_timeout if timeout is None else timeout
    poll_interval = ctx.settings.poll_interval if poll_interval is None else poll_interval
    deadline = clock() + timeout
    last_status = handle.status
    last_error = None

    while True:
        try:
            status = ctx.api.get_vm_status(handle.id)
        except NotFoundError:
            logger.debug(f"VM {handle.name} disappeared while waiting for {target_state}")
            return None
        except Exception as e:
            # only the deadline ends the wait
            last_error = e
            logger.debug(f"Status check for VM {handle.name} failed: {e}")
        else:
            last_status = status
            if status == target_state:
                return None

        remaining = deadline - clock()
        if remaining <= 0:
            detail = f"last status {last_status!r}"
            if last_error is not None:
                detail += f", last error: {last_error}"
            return TeardownTimeoutError(
                f"VM {handle.name} did not reach {target_state!r} within {timeout:.0f}s ({detail})"
            )

        sleep(min(poll_interval, remaining))

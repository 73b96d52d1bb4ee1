"""
Stop and remove single resources, converting every failure into an outcome.
"""

from typing import Callable, Dict, Optional
import logging

from .context import TeardownContext
from .errors import DeleteError
from .events import EventTypes
from .models import ResourceHandle, ResourceKind, TeardownOutcome
from .retry import NOT_FOUND

logger = logging.getLogger(__name__)


def _remover(ctx: TeardownContext, handle: ResourceHandle) -> Callable[[], None]:
    api = ctx.api
    removers: Dict[ResourceKind, Callable[[], None]] = {
        ResourceKind.VM: lambda: api.remove_vm(handle.id),
        ResourceKind.TAG: lambda: api.remove_tag(handle.id),
        ResourceKind.TEMPLATE: lambda: api.remove_template(handle.id),
        ResourceKind.AFFINITY_GROUP: lambda: api.remove_affinity_group(
            handle.parent_id or ctx.identity.cluster_id, handle.id
        ),
    }
    return removers[handle.kind]


def stop_vm(ctx: TeardownContext, handle: ResourceHandle) -> Optional[DeleteError]:
    """
    Hard-stop a VM (this is a teardown, so no graceful shutdown).

    Returns:
        None if the stop was accepted or the VM is gone, DeleteError otherwise
    """
    try:
        result = ctx.call(lambda: ctx.api.stop_vm(handle.id), f"stop VM {handle.name}")
    except Exception as e:
        logger.error(f"Failed to stop VM {handle.name}: {e}")
        return DeleteError(f"stop VM {handle.name}: {e}")

    if result is NOT_FOUND:
        logger.info(f"VM {handle.name} already gone")
    else:
        logger.info(f"Stopping VM {handle.name}")
    return None


def delete(ctx: TeardownContext, handle: ResourceHandle) -> TeardownOutcome:
    """
    Issue the removal call for one resource.

    Never raises: a failed removal becomes a failed outcome and a resource
    that is already absent becomes a successful one.

    Args:
        ctx: Teardown context
        handle: Resource to remove

    Returns:
        TeardownOutcome for this resource
    """
    label = handle.kind.value.replace("_", " ")

    try:
        result = ctx.call(_remover(ctx, handle), f"remove {label} {handle.name}")
    except Exception as e:
        error = DeleteError(f"failed to remove {label} {handle.name}: {e}")
        logger.error(str(error))
        ctx.emit(EventTypes.RESOURCE_FAILED, {
            "kind": handle.kind.value,
            "id": handle.id,
            "name": handle.name,
            "error": str(e),
        })
        return TeardownOutcome(handle=handle, success=False, error=str(error))

    already_absent = result is NOT_FOUND
    if already_absent:
        logger.info(f"{label.capitalize()} {handle.name} already removed")
    else:
        logger.info(f"Removed {label} {handle.name}")

    ctx.emit(EventTypes.RESOURCE_REMOVED, {
        "kind": handle.kind.value,
        "id": handle.id,
        "name": handle.name,
        "already_absent": already_absent,
    })
    return TeardownOutcome(handle=handle, success=True, already_absent=already_absent)

"""
Concurrent teardown of every resource of one kind.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional
import logging

from .context import TeardownContext
from .deleter import delete, stop_vm
from .events import EventTypes
from .locator import locate
from .models import KindSummary, MatchCriterion, ResourceHandle, ResourceKind, TeardownOutcome
from .waiter import VM_STATUS_DOWN, wait_until

logger = logging.getLogger(__name__)

DeleteStep = Callable[[TeardownContext, ResourceHandle], TeardownOutcome]


def stop_and_remove_vm(ctx: TeardownContext, handle: ResourceHandle) -> TeardownOutcome:
    """
    Stop a VM, wait for it to power off, then remove it.

    Stop failures and wait timeouts are recorded as warnings on the
    outcome; removal is attempted regardless and decides success.
    """
    warnings: List[str] = []

    stop_error = stop_vm(ctx, handle)
    if stop_error is not None:
        warnings.append(str(stop_error))

    timeout_error = wait_until(ctx, handle, VM_STATUS_DOWN)
    if timeout_error is None:
        logger.info(f"VM {handle.name} powered off")
    else:
        logger.warning(f"Waited for VM {handle.name} to power off: {timeout_error}")
        warnings.append(str(timeout_error))
        ctx.emit(EventTypes.WAIT_TIMEOUT, {"id": handle.id, "name": handle.name, "error": str(timeout_error)})

    outcome = delete(ctx, handle)
    outcome.warnings.extend(warnings)
    return outcome


DEFAULT_STEPS: Dict[ResourceKind, DeleteStep] = {
    ResourceKind.VM: stop_and_remove_vm,
    ResourceKind.TAG: delete,
    ResourceKind.TEMPLATE: delete,
    ResourceKind.AFFINITY_GROUP: delete,
}


def _run_unit(ctx: TeardownContext, handle: ResourceHandle, step: DeleteStep) -> TeardownOutcome:
    try:
        return step(ctx, handle)
    except Exception as e:
        logger.error(f"Teardown of {handle.describe()} crashed: {e}")
        return TeardownOutcome(handle=handle, success=False, error=f"unexpected error: {e}")


def teardown_all(
    ctx: TeardownContext,
    kind: ResourceKind,
    criterion: MatchCriterion,
    delete_step: Optional[DeleteStep] = None,
    step_name: Optional[str] = None,
) -> KindSummary:
    """
    Locate every resource of ``kind`` matching ``criterion`` and tear each
    one down in its own worker.

    Units are independent: a failing or crashing unit produces a failed
    outcome and never affects its siblings. The call returns only after
    every unit has finished.

    Args:
        ctx: Teardown context
        kind: Resource kind
        criterion: Match criterion passed to the locator
        delete_step: Per-resource step; defaults to DEFAULT_STEPS[kind]
        step_name: Label used in logs and the summary

    Returns:
        KindSummary holding one outcome per discovered resource

    Raises:
        DiscoveryError: If the resources could not be listed
    """
    step = delete_step or DEFAULT_STEPS[kind]
    summary = KindSummary(step=step_name or f"{kind.value}:{criterion}", kind=kind)

    handles = locate(ctx, kind, criterion)
    logger.info(f"Found {len(handles)} {kind.value} resources matching {criterion}")
    if not handles:
        return summary

    outcomes: List[Optional[TeardownOutcome]] = [None] * len(handles)
    workers = min(ctx.settings.max_workers, len(handles))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"teardown-{kind.value}") as executor:
        futures = {
            executor.submit(_run_unit, ctx, handle, step): index
            for index, handle in enumerate(handles)
        }
        for future in as_completed(futures):
            index = futures[future]
            try:
                outcomes[index] = future.result()
            except Exception as e:
                outcomes[index] = TeardownOutcome(handle=handles[index], success=False, error=str(e))

    summary.outcomes = [o for o in outcomes if o is not None]
    logger.info(f"{summary.step}: {summary.removed} removed, {summary.failed} failed")
    return summary

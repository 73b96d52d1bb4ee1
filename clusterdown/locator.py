"""
Resource discovery: find the live resources of one kind that belong to a cluster.
"""

from typing import Any, Callable, Dict, List
import logging

from .context import TeardownContext
from .errors import DiscoveryError
from .models import MatchCriterion, ResourceHandle, ResourceKind
from .retry import NOT_FOUND

logger = logging.getLogger(__name__)


def _search_term(criterion: MatchCriterion) -> str:
    """Translate a criterion into the engine's search language."""
    if criterion.mode == "tag":
        return f"tag={criterion.value}"
    if criterion.mode == "prefix":
        return f"name={criterion.value}*"
    return f"name={criterion.value}"


def _lister(ctx: TeardownContext, kind: ResourceKind, criterion: MatchCriterion) -> Callable[[], List[Dict[str, Any]]]:
    api = ctx.api

    if kind == ResourceKind.VM:
        if criterion.mode != "tag":
            raise DiscoveryError(f"VMs are located by tag, not {criterion.mode}")
        return lambda: api.list_vms(_search_term(criterion))

    if kind == ResourceKind.TAG:
        return api.list_tags

    if kind == ResourceKind.TEMPLATE:
        return lambda: api.list_templates(_search_term(criterion))

    if kind == ResourceKind.AFFINITY_GROUP:
        cluster_id = ctx.identity.cluster_id
        if not cluster_id:
            raise DiscoveryError("no oVirt cluster id known, cannot list affinity groups")
        return lambda: api.list_affinity_groups(cluster_id)

    raise DiscoveryError(f"Don't know how to locate {kind}")


def locate(ctx: TeardownContext, kind: ResourceKind, criterion: MatchCriterion) -> List[ResourceHandle]:
    """
    Discover the current resources of ``kind`` matching ``criterion``.

    VMs are matched by tag on the engine side; tags by exact name;
    templates and affinity groups by name prefix. An empty result is a
    valid cluster state and is returned as an empty list.

    Args:
        ctx: Teardown context
        kind: Resource kind to list
        criterion: Tag equality, name equality or name prefix

    Returns:
        Matching handles, one per distinct resource id

    Raises:
        DiscoveryError: If the listing call itself fails
    """
    lister = _lister(ctx, kind, criterion)
    logger.debug(f"Searching {kind.value} resources by {criterion}")

    try:
        items = ctx.call(lister, f"list {kind.value} ({criterion})")
    except Exception as e:
        raise DiscoveryError(f"failed to list {kind.value} resources by {criterion}: {e}") from e

    if items is NOT_FOUND:
        items = []

    handles: Dict[str, ResourceHandle] = {}
    for item in items:
        name = item.get("name") or ""
        if not item.get("id") or not criterion.matches(name):
            continue
        handles[item["id"]] = ResourceHandle(
            kind=kind,
            id=item["id"],
            name=name,
            status=item.get("status"),
            parent_id=ctx.identity.cluster_id if kind == ResourceKind.AFFINITY_GROUP else None,
        )

    logger.debug(f"Found {len(handles)} {kind.value} resources")
    return list(handles.values())

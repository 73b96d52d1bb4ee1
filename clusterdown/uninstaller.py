"""
Cluster uninstaller: ordered, best-effort teardown of every cluster resource.

Order of steps, each started only after the previous one has finished:

1. for each tag scope (general nodes, then bootstrap): VMs, then the tag
2. templates named after the cluster (only when removal is enabled)
3. affinity groups of the oVirt cluster named after the cluster

A failing step is logged and recorded; later steps always run.
"""

from pathlib import Path
from typing import Callable, Optional, Union
import logging

import yaml

from .config import ClusterMetadata, TeardownSettings
from .context import TeardownContext
from .driver import teardown_all
from .errors import ConnectionSetupError
from .events import EventTypes, emit_event
from .models import ClusterIdentity, KindSummary, MatchCriterion, ResourceKind, TeardownReport
from .ovirt import ClusterAPI, OvirtClient, load_credentials
from .state import write_report_json

logger = logging.getLogger(__name__)


def connect_ovirt(config_path: Optional[Union[str, Path]] = None) -> ClusterAPI:
    """Build and verify an engine client from the oVirt config file."""
    try:
        credentials = load_credentials(config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConnectionSetupError(f"failed to load oVirt credentials: {e}") from e
    return OvirtClient(credentials).connect()


class ClusterUninstaller:
    """Tears down the resources of one cluster."""

    def __init__(
        self,
        identity: ClusterIdentity,
        api: Optional[ClusterAPI] = None,
        settings: Optional[TeardownSettings] = None,
        api_factory: Optional[Callable[[], ClusterAPI]] = None,
        record_events: bool = True,
    ):
        self.identity = identity
        self.settings = settings or TeardownSettings()
        self.record_events = record_events
        self._api = api
        self._api_factory = api_factory or connect_ovirt

    @classmethod
    def from_metadata(cls, metadata: ClusterMetadata, **kwargs) -> "ClusterUninstaller":
        return cls(metadata.to_identity(), **kwargs)

    def _emit(self, event_type: str, data: dict) -> None:
        if self.record_events:
            try:
                emit_event(self.identity.infra_id, event_type, data)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to record {event_type} event: {e}")

    def run(self) -> TeardownReport:
        """
        Run the whole teardown.

        Returns:
            TeardownReport; ``completed`` is False only when the engine
            connection could not be set up
        """
        report = TeardownReport(infra_id=self.identity.infra_id)
        self._emit(EventTypes.TEARDOWN_START, {
            "infra_id": self.identity.infra_id,
            "cluster_id": self.identity.cluster_id,
            "remove_template": self.identity.remove_template,
        })

        owns_api = self._api is None
        try:
            api = self._api or self._api_factory()
        except ConnectionSetupError as e:
            logger.error(str(e))
            report.error = str(e)
            self._emit(EventTypes.ERROR, {"reason": str(e), "fatal": True})
            self._finish(report)
            return report

        ctx = TeardownContext(api=api, identity=self.identity, settings=self.settings,
                              record_events=self.record_events)
        try:
            self._teardown(ctx, report)
        finally:
            if owns_api:
                api.close()

        report.completed = True
        self._finish(report)
        return report

    def _teardown(self, ctx: TeardownContext, report: TeardownReport) -> None:
        identity = self.identity

        for tag in identity.tag_scopes:
            vms = self._step(ctx, report, f"vms:{tag}", ResourceKind.VM, MatchCriterion.tag(tag))
            if not vms.ok:
                logger.error(f"failed to remove VMs tagged {tag}")
            # the tag goes even when some of its VMs could not be removed
            tags = self._step(ctx, report, f"tag:{tag}", ResourceKind.TAG, MatchCriterion.name(tag))
            if not tags.ok:
                logger.error(f"failed to remove tag {tag}")

        if identity.remove_template:
            self._step(ctx, report, "templates", ResourceKind.TEMPLATE,
                       MatchCriterion.prefix(identity.template_name))
        else:
            self._skip(report, "templates", ResourceKind.TEMPLATE, "template removal disabled")

        if identity.cluster_id:
            self._step(ctx, report, "affinity_groups", ResourceKind.AFFINITY_GROUP,
                       MatchCriterion.prefix(identity.name_prefix))
        else:
            logger.warning("No oVirt cluster id in metadata, skipping affinity groups")
            self._skip(report, "affinity_groups", ResourceKind.AFFINITY_GROUP, "no oVirt cluster id")

    def _step(self, ctx: TeardownContext, report: TeardownReport, name: str,
              kind: ResourceKind, criterion: MatchCriterion) -> KindSummary:
        self._emit(EventTypes.STEP_START, {"step": name, "criterion": str(criterion)})

        try:
            summary = teardown_all(ctx, kind, criterion, step_name=name)
        except Exception as e:
            logger.error(f"Step {name} failed: {e}")
            summary = KindSummary(step=name, kind=kind, error=str(e))
            self._emit(EventTypes.STEP_FAILED, {"step": name, "error": str(e)})
        else:
            self._emit(EventTypes.STEP_DONE, {
                "step": name,
                "removed": summary.removed,
                "failed": summary.failed,
            })

        report.steps.append(summary)
        return summary

    def _skip(self, report: TeardownReport, name: str, kind: ResourceKind, reason: str) -> None:
        logger.debug(f"Skipping {name}: {reason}")
        report.steps.append(KindSummary(step=name, kind=kind, skipped=True))
        self._emit(EventTypes.STEP_SKIPPED, {"step": name, "reason": reason})

    def _finish(self, report: TeardownReport) -> None:
        totals = report.totals()
        logger.info(
            f"Teardown of {report.infra_id} {report.status}: "
            + ", ".join(f"{k} {v['removed']} removed/{v['failed']} failed" for k, v in totals.items())
        )
        self._emit(EventTypes.TEARDOWN_DONE, {"status": report.status, "totals": totals})
        if self.record_events:
            try:
                write_report_json(report.infra_id, report.to_dict())
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to write teardown report: {e}")


def destroy(
    identity: ClusterIdentity,
    api: Optional[ClusterAPI] = None,
    settings: Optional[TeardownSettings] = None,
    ovirt_config: Optional[Union[str, Path]] = None,
) -> TeardownReport:
    """
    Tear down a cluster.

    Args:
        identity: Cluster to tear down
        api: Engine client; when omitted one is built from ovirt_config
        settings: Teardown settings
        ovirt_config: oVirt config YAML path

    Returns:
        TeardownReport
    """
    uninstaller = ClusterUninstaller(
        identity,
        api=api,
        settings=settings,
        api_factory=lambda: connect_ovirt(ovirt_config),
    )
    return uninstaller.run()

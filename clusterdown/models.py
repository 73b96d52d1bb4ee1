"""
Data models for cluster teardown.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any


class ResourceKind(Enum):
    """Kinds of resources a cluster leaves behind."""
    VM = "vm"
    TAG = "tag"
    TEMPLATE = "template"
    AFFINITY_GROUP = "affinity_group"


@dataclass(frozen=True)
class ClusterIdentity:
    """Identity of the cluster being torn down. Never mutated after creation."""
    infra_id: str
    cluster_id: Optional[str] = None  # oVirt cluster that scopes affinity groups
    remove_template: bool = False
    cluster_name: Optional[str] = None

    @property
    def base_tag(self) -> str:
        return self.infra_id

    @property
    def bootstrap_tag(self) -> str:
        return f"{self.infra_id}-bootstrap"

    @property
    def tag_scopes(self) -> List[str]:
        """Tag scopes in teardown order: general nodes, then bootstrap."""
        return [self.base_tag, self.bootstrap_tag]

    @property
    def template_name(self) -> str:
        """Prefix of the installer-created RHCOS templates; only these are removed, not every name_prefix match."""
        return f"{self.infra_id}-rhcos"

    @property
    def name_prefix(self) -> str:
        return f"{self.infra_id}-"


@dataclass(frozen=True)
class MatchCriterion:
    """How discovered resources are matched against the cluster."""
    mode: str   # "tag" | "name" | "prefix"
    value: str

    @classmethod
    def tag(cls, value: str) -> "MatchCriterion":
        return cls("tag", value)

    @classmethod
    def name(cls, value: str) -> "MatchCriterion":
        return cls("name", value)

    @classmethod
    def prefix(cls, value: str) -> "MatchCriterion":
        return cls("prefix", value)

    def matches(self, name: str) -> bool:
        """Check a resource name against this criterion (tag mode matches server-side)."""
        if self.mode == "prefix":
            return name.startswith(self.value)
        if self.mode == "name":
            return name == self.value
        return True

    def __str__(self) -> str:
        return f"{self.mode}={self.value}"


@dataclass(frozen=True)
class ResourceHandle:
    """A discovered resource instance."""
    kind: ResourceKind
    id: str
    name: str
    status: Optional[str] = None   # VMs only: power state
    parent_id: Optional[str] = None  # affinity groups: owning cluster id

    def describe(self) -> str:
        return f"{self.kind.value} {self.name} ({self.id})"


@dataclass
class TeardownOutcome:
    """Result of one resource's teardown attempt."""
    handle: ResourceHandle
    success: bool
    error: Optional[str] = None
    already_absent: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.handle.kind.value,
            "id": self.handle.id,
            "name": self.handle.name,
            "success": self.success,
            "error": self.error,
            "already_absent": self.already_absent,
            "warnings": list(self.warnings),
        }


@dataclass
class KindSummary:
    """Outcomes of one step (one kind within one scope)."""
    step: str
    kind: ResourceKind
    outcomes: List[TeardownOutcome] = field(default_factory=list)
    error: Optional[str] = None  # set when discovery itself failed
    skipped: bool = False

    @property
    def removed(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def ok(self) -> bool:
        return self.error is None and self.failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "kind": self.kind.value,
            "removed": self.removed,
            "failed": self.failed,
            "skipped": self.skipped,
            "error": self.error,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


@dataclass
class TeardownReport:
    """
    Summary of a whole teardown run.

    ``completed`` says whether the orchestrator ran every step; per-resource
    success is reported separately through ``steps``.
    """
    infra_id: str
    completed: bool = False
    steps: List[KindSummary] = field(default_factory=list)
    error: Optional[str] = None

    def removed_count(self, kind: ResourceKind) -> int:
        return sum(s.removed for s in self.steps if s.kind == kind)

    def failed_count(self, kind: Optional[ResourceKind] = None) -> int:
        return sum(s.failed for s in self.steps if kind is None or s.kind == kind)

    @property
    def has_failures(self) -> bool:
        return any(not s.ok for s in self.steps)

    @property
    def status(self) -> str:
        if not self.completed:
            return "failed"
        return "completed_with_failures" if self.has_failures else "completed"

    def totals(self) -> Dict[str, Dict[str, int]]:
        return {
            kind.value: {
                "removed": self.removed_count(kind),
                "failed": self.failed_count(kind),
            }
            for kind in ResourceKind
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "infra_id": self.infra_id,
            "status": self.status,
            "completed": self.completed,
            "error": self.error,
            "totals": self.totals(),
            "steps": [s.to_dict() for s in self.steps],
        }

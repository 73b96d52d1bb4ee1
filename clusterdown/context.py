"""
Explicit per-run context shared by every teardown component.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TypeVar, Union
import logging

from .config import TeardownSettings
from .events import emit_event
from .models import ClusterIdentity
from .ovirt.base import ClusterAPI
from .retry import call_with_retry, _NotFound

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TeardownContext:
    """
    Everything a teardown call needs: the engine API, who is being torn
    down and how. The API object is shared read-only across worker threads.
    """
    api: ClusterAPI
    identity: ClusterIdentity
    settings: TeardownSettings = field(default_factory=TeardownSettings)
    record_events: bool = True

    def call(self, operation: Callable[[], T], description: str) -> Union[T, _NotFound]:
        """Run one engine call under the configured retry policy."""
        return call_with_retry(operation, self.settings.retry, description)

    def emit(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
        if not self.record_events:
            return
        try:
            emit_event(self.identity.infra_id, event_type, data or {})
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to record {event_type} event: {e}")

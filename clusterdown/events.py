"""
Event logging utilities for NDJSON format.
"""

import json
import threading
import time
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from .state import create_cluster_dir, get_cluster_dir

# Driver units emit events from worker threads
_write_lock = threading.Lock()


def emit_event(infra_id: str, event_type: str, data: Dict[str, Any]) -> None:
    """
    Append an event to the cluster's logs.ndjson file.

    Args:
        infra_id: Infrastructure ID
        event_type: Event type (e.g., "TEARDOWN_START", "RESOURCE_REMOVED")
        data: Event data
    """
    logs_file = create_cluster_dir(infra_id) / "logs.ndjson"

    event = {
        "ts": datetime.now().isoformat(),
        "type": event_type,
        "data": data
    }

    with _write_lock:
        with open(logs_file, "a") as f:
            f.write(json.dumps(event) + "\n")
            f.flush()


def read_events(infra_id: str) -> list[Dict[str, Any]]:
    """
    Read all events from a cluster's logs.ndjson file.

    Args:
        infra_id: Infrastructure ID

    Returns:
        List of events
    """
    logs_file = get_cluster_dir(infra_id) / "logs.ndjson"

    if not logs_file.exists():
        return []

    events = []
    with open(logs_file, "r") as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    continue  # Skip malformed lines

    return events


def get_last_event(infra_id: str) -> Optional[Dict[str, Any]]:
    events = read_events(infra_id)
    return events[-1] if events else None


def get_status_from_events(infra_id: str) -> str:
    """
    Determine teardown status from events.

    Args:
        infra_id: Infrastructure ID

    Returns:
        One of "unknown", "running", "completed", "completed_with_failures", "failed"
    """
    events = read_events(infra_id)
    if not events:
        return "unknown"

    # Only look at the most recent run
    for event in reversed(events):
        event_type = event.get("type")
        if event_type == EventTypes.TEARDOWN_DONE:
            return event.get("data", {}).get("status", "completed")
        if event_type == EventTypes.ERROR and event.get("data", {}).get("fatal"):
            return "failed"
        if event_type == EventTypes.TEARDOWN_START:
            break

    return "running"


def tail_events(infra_id: str, follow: bool = False, poll: float = 0.1) -> Iterator[Dict[str, Any]]:
    """
    Generator that yields events, optionally waiting for new ones.

    Args:
        infra_id: Infrastructure ID
        follow: If True, keep watching until TEARDOWN_DONE is seen
        poll: Seconds between file size checks

    Yields:
        Event dictionaries
    """
    logs_file = get_cluster_dir(infra_id) / "logs.ndjson"

    if not logs_file.exists():
        return

    position = 0
    while True:
        try:
            with open(logs_file, "r") as f:
                f.seek(position)
                while True:
                    line = f.readline()
                    if not line.endswith("\n"):
                        break  # partial line still being written
                    position = f.tell()
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        event = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    yield event
                    if follow and event.get("type") == EventTypes.TEARDOWN_DONE:
                        return
        except FileNotFoundError:
            break

        if not follow:
            return
        time.sleep(poll)


# Predefined event types for consistency
class EventTypes:
    TEARDOWN_START = "TEARDOWN_START"
    STEP_START = "STEP_START"
    STEP_DONE = "STEP_DONE"
    STEP_FAILED = "STEP_FAILED"
    STEP_SKIPPED = "STEP_SKIPPED"
    RESOURCE_REMOVED = "RESOURCE_REMOVED"
    RESOURCE_FAILED = "RESOURCE_FAILED"
    WAIT_TIMEOUT = "WAIT_TIMEOUT"
    TEARDOWN_DONE = "TEARDOWN_DONE"
    ERROR = "ERROR"

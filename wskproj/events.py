"""
Event logging utilities for NDJSON format.

Each project gets ``<home>/<project>/events.ndjson`` recording what
undeploy and export runs discovered and deleted.
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import get_home

UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class EventTypes:
    UNDEPLOY_START = "UNDEPLOY_START"
    DISCOVERED = "DISCOVERED"
    PREVIEW = "PREVIEW"
    DELETED = "DELETED"
    UNDEPLOY_DONE = "UNDEPLOY_DONE"
    EXPORTED = "EXPORTED"
    ERROR = "ERROR"


def project_dir(project_name: str, home: Optional[Path] = None) -> Path:
    """
    Get the event directory for a project.

    Args:
        project_name: Project name (unsafe path characters are replaced)
        home: Base directory, defaults to the wskproj home

    Returns:
        Path: Project directory
    """
    safe = UNSAFE_CHARS.sub("_", project_name) or "_"
    return (home or get_home()) / safe


class EventLog:
    """Append-only NDJSON log for one project."""

    def __init__(self, project_name: str, home: Optional[Path] = None):
        self.project_name = project_name
        self.path = project_dir(project_name, home) / "events.ndjson"

    def emit(self, event_type: str, data: Dict[str, Any]) -> None:
        """
        Append an event.

        Args:
            event_type: Event type (see EventTypes)
            data: Event data
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        event = {
            "ts": datetime.now().isoformat(),
            "type": event_type,
            "project": self.project_name,
            "data": data
        }
        with open(self.path, "a") as f:
            f.write(json.dumps(event) + "\n")
            f.flush()

    def read(self) -> List[Dict[str, Any]]:
        """
        Read all events.

        Returns:
            List of events, oldest first
        """
        if not self.path.exists():
            return []

        events = []
        with open(self.path, "r") as f:
            for line in f:
                line = line.strip()
                if line:
                    try:
                        events.append(json.loads(line))
                    except json.JSONDecodeError:
                        continue  # Skip malformed lines
        return events

    def last(self) -> Optional[Dict[str, Any]]:
        events = self.read()
        return events[-1] if events else None

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional
import json
import time

class AuditLogger:
    def __init__(self, events_path: Optional[Path]) -> None:
        self.events_path = events_path
        if self.events_path is not None:
            self.events_path.parent.mkdir(parents=True, exist_ok=True)
            # fail at startup, not halfway through a command
            with self.events_path.open("a", encoding="utf-8"):
                pass

    @property
    def enabled(self) -> bool:
        return self.events_path is not None

    def log(self, event_type: str, data: Dict[str, Any]) -> None:
        if self.events_path is None:
            return
        event = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            "type": event_type,
            "data": data or {},
        }
        with self.events_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")

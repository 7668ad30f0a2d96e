from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from lastturn.engine.state import MatchResult


class ResultSink(Protocol):
    """Receives each finished match exactly once, on the session's hand-off worker."""

    def save(self, result: MatchResult) -> None: ...


@dataclass
class JsonlResultStore:
    """Appends finished matches to a JSON Lines file."""

    path: Path
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def save(self, result: MatchResult) -> None:
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "type": "match_result",
            "payload": result.to_dict(),
        }
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def load_all(self) -> list[dict[str, object]]:
        if not self.path.exists():
            return []
        out: list[dict[str, object]] = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                rec = json.loads(line)
                payload = rec.get("payload") if isinstance(rec, dict) else None
                if isinstance(payload, dict):
                    out.append(payload)
        return out


class MemoryResultSink:
    """Keeps results in memory; handy for tests and embedding."""

    def __init__(self) -> None:
        self.results: list[MatchResult] = []

    def save(self, result: MatchResult) -> None:
        self.results.append(result)

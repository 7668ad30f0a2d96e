from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable


@dataclass(frozen=True)
class LogEntry:
    text: str
    timestamp: datetime

    def format(self) -> str:
        return f"{self.timestamp.strftime('%H:%M:%S')} - {self.text}"


@dataclass
class MatchLog:
    """Append-only, timestamped record of a match."""

    entries: list[LogEntry] = field(default_factory=list)
    clock: Callable[[], datetime] = datetime.now

    def add(self, text: str) -> LogEntry:
        entry = LogEntry(text=text, timestamp=self.clock())
        self.entries.append(entry)
        return entry

    def lines(self) -> list[str]:
        return [e.format() for e in self.entries]

    def as_text(self) -> str:
        return "".join(line + "\n" for line in self.lines())

    def contains(self, fragment: str) -> bool:
        return any(fragment in e.text for e in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

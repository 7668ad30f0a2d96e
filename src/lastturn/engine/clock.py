from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MatchClock:
    """Countdown arithmetic for the total and per-action clocks.

    The engine owns no timers: a scheduler (see ``services.session``) feeds
    one tick per elapsed time unit. A stopped clock ignores ticks.
    """

    total_seconds: int
    action_seconds: int
    remaining_total: int = -1
    remaining_action: int = -1
    running: bool = True

    def __post_init__(self) -> None:
        if self.remaining_total < 0:
            self.remaining_total = self.total_seconds
        if self.remaining_action < 0:
            self.remaining_action = self.action_seconds

    def tick_total(self) -> bool:
        if not self.running or self.remaining_total <= 0:
            return False
        self.remaining_total -= 1
        return self.remaining_total == 0

    def tick_action(self) -> bool:
        if not self.running or self.remaining_action <= 0:
            return False
        self.remaining_action -= 1
        return self.remaining_action == 0

    def reset_action(self) -> None:
        if self.running:
            self.remaining_action = self.action_seconds

    def stop(self) -> None:
        self.running = False

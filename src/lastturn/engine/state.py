from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from .actions import Action
from .board import SideState
from .clock import MatchClock
from .log import MatchLog
from .types import OPPONENT, PLAYER, CardDatabase, MatchConfig, Outcome, TurnPhase

Event = dict[str, object]

ResultStatus = Literal["pending", "acknowledged"]


@dataclass(frozen=True)
class MatchResult:
    """Final record of a match, handed to the persistence collaborator."""

    id: str
    player_name: str
    played_at: datetime
    outcome: Outcome
    reason: str
    board_size: int
    damage_dealt: int
    damage_received: int
    cards_eliminated: int
    log: str

    def summary(self) -> str:
        return (
            f"Cards eliminated: {self.cards_eliminated}\n"
            f"Damage dealt: {self.damage_dealt}\n"
            f"Damage received: {self.damage_received}"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "player_name": self.player_name,
            "played_at": self.played_at.isoformat(timespec="seconds"),
            "outcome": self.outcome.value,
            "reason": self.reason,
            "board_size": self.board_size,
            "damage_dealt": self.damage_dealt,
            "damage_received": self.damage_received,
            "cards_eliminated": self.cards_eliminated,
            "log": self.log,
        }


@dataclass
class ResultEvent:
    """One-shot result notification: pending until the consumer acknowledges it."""

    result: MatchResult
    status: ResultStatus = "pending"


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None


@dataclass
class MatchState:
    cards: CardDatabase
    config: MatchConfig
    seed: int
    rng: random.Random
    players: list[SideState]
    clock: MatchClock
    phase: TurnPhase = TurnPhase.AWAITING_PLAYER
    selected_card: str | None = None
    outcome: Outcome | None = None
    outcome_reason: str | None = None
    result: ResultEvent | None = None
    log: MatchLog = field(default_factory=MatchLog)
    action_log: list[Action] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)

    @property
    def board_size(self) -> int:
        return self.config.board_slots

    @property
    def player(self) -> SideState:
        return self.players[PLAYER]

    @property
    def opponent(self) -> SideState:
        return self.players[OPPONENT]

    @property
    def is_over(self) -> bool:
        return self.outcome is not None

    def other(self, side: int) -> int:
        return 1 - side

    def emit(self, event: Event) -> None:
        self.event_log.append(event)

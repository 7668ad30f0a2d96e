from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

ClockKind = Literal["total", "action"]

PLAYER = 0
OPPONENT = 1


class TurnPhase(str, Enum):
    AWAITING_PLAYER = "AWAITING_PLAYER"
    AWAITING_OPPONENT = "AWAITING_OPPONENT"
    RESOLVING_COMBAT = "RESOLVING_COMBAT"


class Outcome(str, Enum):
    """Terminal verdict, always from the human side's perspective."""

    VICTORY = "VICTORY"
    DEFEAT = "DEFEAT"
    DRAW = "DRAW"


@dataclass(frozen=True)
class CardDefinition:
    id: str
    name: str
    damage: int
    health: int


@dataclass(frozen=True)
class CardDatabase:
    """Immutable card database used by the engine."""

    cards: dict[str, CardDefinition]

    def get(self, card_id: str) -> CardDefinition:
        return self.cards[card_id]

    def deck_order(self) -> list[str]:
        # dicts keep insertion order, which is the content file order
        return list(self.cards.keys())


@dataclass(frozen=True)
class MatchConfig:
    board_slots: int = 4
    total_time_seconds: int = 180
    action_time_seconds: int = 30
    max_health: int = 3
    starting_hand: int = 3
    draw_per_round: int = 2
    direct_damage: int = 1
    opponent_opening_card: bool = True
    shuffle_opponent_deck: bool = True

    def validate(self) -> None:
        if self.board_slots < 1:
            raise ValueError("Board must have at least one slot.")
        if self.total_time_seconds < 1 or self.action_time_seconds < 1:
            raise ValueError("Clock durations must be positive.")
        if self.max_health < 1:
            raise ValueError("Max health must be positive.")
        if self.starting_hand < 0 or self.draw_per_round < 0 or self.direct_damage < 0:
            raise ValueError("Card counts and direct damage cannot be negative.")

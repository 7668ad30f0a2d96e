from __future__ import annotations

from dataclasses import dataclass

from .types import ClockKind


@dataclass(frozen=True)
class SelectCardAction:
    card_id: str


@dataclass(frozen=True)
class PlaceCardAction:
    slot: int


@dataclass(frozen=True)
class ClockTickAction:
    clock: ClockKind


Action = SelectCardAction | PlaceCardAction | ClockTickAction

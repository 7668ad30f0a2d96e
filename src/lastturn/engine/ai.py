from __future__ import annotations

from dataclasses import dataclass

from .state import MatchState


@dataclass(frozen=True)
class Placement:
    hand_index: int
    slot: int


def choose_placement(state: MatchState, side: int) -> Placement | None:
    """Pick a uniformly random card from hand and a uniformly random empty slot.

    Uses the engine RNG (`state.rng`) so the choice replays for a given seed.
    Returns None when the hand is empty or the board is full.
    """
    ps = state.players[side]
    empty = ps.empty_slots()
    if not empty or not ps.hand:
        return None
    hand_index = state.rng.randrange(len(ps.hand))
    slot = state.rng.choice(empty)
    return Placement(hand_index=hand_index, slot=slot)


def choose_opening_placement(state: MatchState, side: int) -> Placement | None:
    """Opening move: first card in hand into the first empty slot."""
    ps = state.players[side]
    empty = ps.empty_slots()
    if not empty or not ps.hand:
        return None
    return Placement(hand_index=0, slot=empty[0])

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .board import SideState
from .state import MatchState
from .types import OPPONENT, PLAYER


@dataclass(frozen=True)
class LaneResult:
    lane: int
    kind: str  # clash|direct|empty
    eliminated: tuple[int, ...] = ()
    direct_hit_side: int | None = None

    @property
    def changed_health(self) -> bool:
        return self.direct_hit_side is not None or bool(self.eliminated)


def _record_damage(attacker: SideState, defender: SideState, amount: int) -> None:
    attacker.metrics.damage_dealt += amount
    defender.metrics.damage_received += amount


def _clash(state: MatchState, lane: int) -> LaneResult:
    sides = state.players
    p_slot = sides[PLAYER].board[lane]
    o_slot = sides[OPPONENT].board[lane]
    p_card = p_slot.card
    o_card = o_slot.card
    assert p_card is not None and o_card is not None

    # Read both damage values before either health is written.
    to_opponent = p_card.damage
    to_player = o_card.damage
    p_after = p_card.with_health(p_card.health - to_player)
    o_after = o_card.with_health(o_card.health - to_opponent)
    p_slot.card = p_after
    o_slot.card = o_after

    _record_damage(sides[PLAYER], sides[OPPONENT], to_opponent)
    _record_damage(sides[OPPONENT], sides[PLAYER], to_player)
    state.log.add(
        f"Combat in slot {lane}: {p_card.name} ({p_card.health}) vs {o_card.name} ({o_card.health})."
    )
    state.emit(
        {
            "type": "CLASH",
            "slot": lane,
            "player_card": p_card.card_id,
            "opponent_card": o_card.card_id,
            "player_health": p_after.health,
            "opponent_health": o_after.health,
        }
    )

    eliminated: list[int] = []
    for side, slot, before in ((OPPONENT, o_slot, o_card), (PLAYER, p_slot, p_card)):
        after = slot.card
        if after is None or not after.is_dead:
            continue
        slot.clear()
        sides[state.other(side)].metrics.cards_eliminated += 1
        eliminated.append(side)
        owner = "Opponent" if side == OPPONENT else "Player"
        state.log.add(f"{owner} card {before.name} eliminated.")
        state.emit({"type": "CARD_ELIMINATED", "side": side, "slot": lane, "card_id": before.card_id})
    return LaneResult(lane=lane, kind="clash", eliminated=tuple(eliminated))


def _direct(state: MatchState, lane: int, attacker: int) -> LaneResult:
    defender = state.other(attacker)
    a = state.players[attacker]
    d = state.players[defender]
    card = a.board[lane].card
    assert card is not None

    lost = d.take_direct_hit(state.config.direct_damage)
    # The statistic tracks the attacker's card damage, not the flat hit.
    _record_damage(a, d, card.damage)
    if attacker == PLAYER:
        state.log.add(
            f"Player card {card.name} strikes the opponent directly for {lost}. Opponent health: {d.health}"
        )
    else:
        state.log.add(
            f"Opponent card {card.name} strikes the player directly for {lost}. Player health: {d.health}"
        )
    state.emit(
        {"type": "DIRECT_HIT", "slot": lane, "attacker": attacker, "card_id": card.card_id, "amount": lost}
    )
    return LaneResult(lane=lane, kind="direct", direct_hit_side=defender)


def resolve_lane(state: MatchState, lane: int) -> LaneResult:
    """Resolve one paired lane. Touches only the two slots at ``lane`` and the two sides."""
    p_card = state.players[PLAYER].board[lane].card
    o_card = state.players[OPPONENT].board[lane].card
    if p_card is not None and o_card is not None:
        return _clash(state, lane)
    if p_card is not None:
        return _direct(state, lane, PLAYER)
    if o_card is not None:
        return _direct(state, lane, OPPONENT)
    state.log.add(f"Slot {lane} empty on both sides. No combat.")
    return LaneResult(lane=lane, kind="empty")


def resolve_combat(state: MatchState, halt: Callable[[], bool] | None = None) -> list[LaneResult]:
    """Resolve every lane in index order.

    ``halt`` is consulted after each lane that changed health or removed a card;
    a true return stops the pass (used to end the match mid-combat).
    """
    state.log.add("Combat phase begins.")
    results: list[LaneResult] = []
    for lane in range(state.board_size):
        res = resolve_lane(state, lane)
        results.append(res)
        if halt is not None and res.changed_health and halt():
            if lane < state.board_size - 1:
                state.log.add("Combat stopped early, the match is over.")
            break
    return results

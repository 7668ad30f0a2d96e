from __future__ import annotations

from .actions import Action, ClockTickAction, PlaceCardAction, SelectCardAction
from .board import BoardSlot, CardInstance, SideState
from .state import MatchState


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, SelectCardAction):
        return {"type": "select", "card_id": a.card_id}
    if isinstance(a, PlaceCardAction):
        return {"type": "place", "slot": a.slot}
    if isinstance(a, ClockTickAction):
        return {"type": "tick", "clock": a.clock}
    # should be unreachable
    return {"type": "unknown"}


def _card_to_dict(c: CardInstance | None) -> dict[str, object] | None:
    if c is None:
        return None
    return {
        "card_id": c.card_id,
        "name": c.name,
        "damage": c.damage,
        "health": c.health,
        "max_health": c.max_health,
    }


def _slot_to_dict(s: BoardSlot) -> dict[str, object]:
    return {"index": s.index, "card": _card_to_dict(s.card)}


def _side_to_dict(p: SideState) -> dict[str, object]:
    return {
        "name": p.name,
        "health": p.health,
        "max_health": p.max_health,
        "deck": [c.card_id for c in p.deck],
        "hand": [_card_to_dict(c) for c in p.hand],
        "board": [_slot_to_dict(s) for s in p.board],
        "metrics": {
            "damage_dealt": p.metrics.damage_dealt,
            "damage_received": p.metrics.damage_received,
            "cards_eliminated": p.metrics.cards_eliminated,
        },
    }


def snapshot(state: MatchState, *, include_log: bool = False) -> dict[str, object]:
    """Return a JSON-serializable copy of the current match state.

    The copy shares nothing with the engine, so observers on other threads can
    read it freely.
    """
    snap: dict[str, object] = {
        "seed": state.seed,
        "board_size": state.board_size,
        "phase": state.phase.value,
        "selected_card": state.selected_card,
        "remaining_total_time": state.clock.remaining_total,
        "remaining_action_time": state.clock.remaining_action,
        "clock_running": state.clock.running,
        "outcome": state.outcome.value if state.outcome is not None else None,
        "outcome_reason": state.outcome_reason,
        "result_status": state.result.status if state.result is not None else None,
        "players": [_side_to_dict(p) for p in state.players],
        "action_log": [action_to_dict(a) for a in state.action_log],
    }
    if include_log:
        snap["log"] = state.log.lines()
    return snap

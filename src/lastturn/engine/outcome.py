from __future__ import annotations

import uuid
from datetime import datetime

from .state import MatchResult, MatchState, ResultEvent
from .types import Outcome


def _compare(mine: int, theirs: int) -> Outcome | None:
    if mine > theirs:
        return Outcome.VICTORY
    if mine < theirs:
        return Outcome.DEFEAT
    return None


def _by_damage(state: MatchState) -> Outcome:
    return _compare(state.player.metrics.damage_dealt, state.opponent.metrics.damage_dealt) or Outcome.DRAW


def _by_health_then_damage(state: MatchState) -> Outcome:
    return _compare(state.player.health, state.opponent.health) or _by_damage(state)


def evaluate_outcome(state: MatchState) -> tuple[Outcome, str] | None:
    """Check terminal conditions in priority order. Pure: never mutates ``state``."""
    p = state.player
    o = state.opponent
    if p.is_defeated and o.is_defeated:
        return _by_damage(state), "both_defeated"
    if p.is_defeated:
        return Outcome.DEFEAT, "player_defeated"
    if o.is_defeated:
        return Outcome.VICTORY, "opponent_defeated"

    p_cards = p.has_cards_available()
    o_cards = o.has_cards_available()
    if not p_cards and not o_cards:
        return _by_health_then_damage(state), "both_out_of_cards"
    if not p_cards:
        return Outcome.DEFEAT, "player_out_of_cards"
    if not o_cards:
        return Outcome.VICTORY, "opponent_out_of_cards"
    return None


def evaluate_by_time(state: MatchState) -> Outcome:
    return _by_health_then_damage(state)


_REASON_TEXT = {
    "both_defeated": "Both sides ran out of health.",
    "player_defeated": "The player ran out of health.",
    "opponent_defeated": "The opponent ran out of health.",
    "both_out_of_cards": "Both sides ran out of cards.",
    "player_out_of_cards": "The player ran out of cards.",
    "opponent_out_of_cards": "The opponent ran out of cards.",
    "time_over": "Total match time expired.",
}


def decide(state: MatchState, outcome: Outcome, reason: str) -> bool:
    """Set the terminal outcome exactly once.

    Returns False (and changes nothing) when the match is already decided.
    """
    if state.outcome is not None:
        return False
    state.outcome = outcome
    state.outcome_reason = reason
    state.clock.stop()
    state.selected_card = None
    state.log.add(_REASON_TEXT.get(reason, reason))
    state.log.add(f"Match over: {outcome.value}.")

    p = state.player
    result = MatchResult(
        id=uuid.uuid4().hex,
        player_name=p.name,
        played_at=datetime.now(),
        outcome=outcome,
        reason=reason,
        board_size=state.board_size,
        damage_dealt=p.metrics.damage_dealt,
        damage_received=p.metrics.damage_received,
        cards_eliminated=p.metrics.cards_eliminated,
        log=state.log.as_text(),
    )
    state.result = ResultEvent(result=result)
    state.emit({"type": "GAME_ENDED", "outcome": outcome.value, "reason": reason})
    return True


def check_outcome(state: MatchState) -> bool:
    """Run the evaluator and record a verdict if there is one. Returns whether the match is over."""
    if state.outcome is not None:
        return True
    verdict = evaluate_outcome(state)
    if verdict is None:
        return False
    decide(state, *verdict)
    return True


def pending_result(state: MatchState) -> MatchResult | None:
    if state.result is None or state.result.status != "pending":
        return None
    return state.result.result


def reset_result_event(state: MatchState) -> bool:
    """Acknowledge the one-shot result. Returns whether one was pending."""
    if state.result is None or state.result.status != "pending":
        return False
    state.result.status = "acknowledged"
    return True

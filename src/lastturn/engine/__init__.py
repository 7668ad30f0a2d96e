"""Deterministic, headless rules engine for LastTurn.

IMPORTANT: This package must never start threads or perform I/O.
"""

from .actions import ClockTickAction, PlaceCardAction, SelectCardAction
from .match import new_match, replay, step
from .outcome import evaluate_outcome, pending_result, reset_result_event
from .state import MatchResult, MatchState, StepResult
from .types import OPPONENT, PLAYER, CardDatabase, MatchConfig, Outcome, TurnPhase

__all__ = [
    "CardDatabase",
    "ClockTickAction",
    "MatchConfig",
    "MatchResult",
    "MatchState",
    "OPPONENT",
    "Outcome",
    "PLAYER",
    "PlaceCardAction",
    "SelectCardAction",
    "StepResult",
    "TurnPhase",
    "evaluate_outcome",
    "new_match",
    "pending_result",
    "replay",
    "reset_result_event",
    "step",
]

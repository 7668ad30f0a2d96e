from __future__ import annotations

import random
from typing import Iterable, Sequence

from .actions import Action, ClockTickAction, PlaceCardAction, SelectCardAction
from .ai import Placement, choose_opening_placement, choose_placement
from .board import CardInstance, new_side
from .clock import MatchClock
from .combat import resolve_combat
from .log import MatchLog
from .outcome import check_outcome, decide, evaluate_by_time
from .state import MatchState, StepResult
from .types import OPPONENT, PLAYER, CardDatabase, MatchConfig, TurnPhase


def _set_phase(state: MatchState, phase: TurnPhase) -> None:
    if state.phase == phase:
        return
    state.phase = phase
    state.emit({"type": "PHASE_CHANGED", "phase": phase.value})


def _reject(state: MatchState, error: str) -> StepResult:
    # Invalid intents leave a trace in the match log and nothing else.
    state.log.add(f"Rejected: {error}")
    return StepResult(ok=False, events=[], error=error)


def _draw_one(state: MatchState, side: int) -> CardInstance | None:
    card = state.players[side].draw()
    if card is not None:
        state.emit({"type": "CARD_DRAWN", "side": side, "card_id": card.card_id})
    return card


def _place(state: MatchState, side: int, placement: Placement) -> CardInstance:
    ps = state.players[side]
    card = ps.hand.pop(placement.hand_index)
    ps.board[placement.slot].place(card)
    state.emit({"type": "CARD_PLACED", "side": side, "slot": placement.slot, "card_id": card.card_id})
    return card


def _opponent_places(state: MatchState) -> bool:
    choice = choose_placement(state, OPPONENT)
    if choice is None:
        state.log.add("Opponent could not place a card (no empty slot or empty hand).")
        return False
    card = _place(state, OPPONENT, choice)
    state.log.add(f"Opponent places {card.name} in slot {choice.slot}.")
    return True


def _draw_round(state: MatchState) -> None:
    n = state.config.draw_per_round
    for _ in range(n):
        _draw_one(state, PLAYER)
        _draw_one(state, OPPONENT)
    state.log.add(f"Each side draws up to {n} cards after combat.")
    check_outcome(state)


def _combat_round(state: MatchState) -> None:
    _set_phase(state, TurnPhase.RESOLVING_COMBAT)
    resolve_combat(state, halt=lambda: check_outcome(state))
    if check_outcome(state):
        return
    _draw_round(state)


def _finish_round(state: MatchState) -> None:
    state.clock.reset_action()
    _set_phase(state, TurnPhase.AWAITING_PLAYER)


def _run_opponent_turn(state: MatchState) -> None:
    """AWAITING_OPPONENT -> RESOLVING_COMBAT -> AWAITING_PLAYER, with no external input."""
    _opponent_places(state)
    _combat_round(state)
    if state.is_over:
        return
    _finish_round(state)


def _select_card(state: MatchState, action: SelectCardAction) -> StepResult:
    card_index = state.player.hand_index(action.card_id)
    if card_index is None:
        return _reject(state, f"Card {action.card_id!r} is not in hand.")
    card = state.player.hand[card_index]
    state.selected_card = card.card_id
    state.log.add(f"Card selected: {card.name}")
    return StepResult(ok=True, events=[])


def _place_card(state: MatchState, action: PlaceCardAction) -> StepResult:
    if state.phase != TurnPhase.AWAITING_PLAYER:
        return _reject(state, "Not your turn.")
    if state.selected_card is None:
        return _reject(state, "No card selected.")
    if action.slot < 0 or action.slot >= state.board_size:
        return _reject(state, f"Slot {action.slot} does not exist.")
    if not state.player.board[action.slot].is_empty:
        return _reject(state, f"Slot {action.slot} is occupied.")
    hand_index = state.player.hand_index(state.selected_card)
    if hand_index is None:
        return _reject(state, "Selected card is no longer in hand.")

    start = len(state.event_log)
    state.selected_card = None
    card = _place(state, PLAYER, Placement(hand_index=hand_index, slot=action.slot))
    state.log.add(f"Card {card.name} placed in slot {action.slot}.")
    state.clock.reset_action()

    _combat_round(state)
    if not state.is_over:
        # The opponent answers with a card of its own before handing the turn back.
        _opponent_places(state)
        _finish_round(state)
    return StepResult(ok=True, events=state.event_log[start:])


def _tick(state: MatchState, action: ClockTickAction) -> StepResult:
    start = len(state.event_log)
    if action.clock == "total":
        if state.clock.tick_total():
            decide(state, evaluate_by_time(state), "time_over")
        return StepResult(ok=True, events=state.event_log[start:])

    if not state.clock.tick_action():
        return StepResult(ok=True, events=[])
    if state.phase != TurnPhase.AWAITING_PLAYER:
        return StepResult(ok=True, events=[])

    state.log.add("Player action time ran out. The opponent takes an automatic turn.")
    state.emit({"type": "TURN_FORFEITED", "side": PLAYER})
    _set_phase(state, TurnPhase.AWAITING_OPPONENT)
    _run_opponent_turn(state)
    return StepResult(ok=True, events=state.event_log[start:])


def step(state: MatchState, action: Action) -> StepResult:
    """Apply a single intent or clock tick to the match state.

    This mutates `state` in-place but remains deterministic for a given
    (seed, initial decks, action sequence). A decided match is never mutated.
    """
    if state.outcome is not None:
        return StepResult(ok=False, events=[], error="Match already ended.")

    # Log first so replay has a full record of attempted actions
    state.action_log.append(action)

    if isinstance(action, SelectCardAction):
        return _select_card(state, action)
    if isinstance(action, PlaceCardAction):
        return _place_card(state, action)
    if isinstance(action, ClockTickAction):
        return _tick(state, action)
    return _reject(state, "Unknown action.")


def new_match(
    cards: CardDatabase,
    deck0: Sequence[str],
    deck1: Sequence[str],
    seed: int,
    config: MatchConfig | None = None,
    player_name: str = "Player",
    opponent_name: str = "Opponent",
    log: MatchLog | None = None,
) -> MatchState:
    cfg = config or MatchConfig()
    cfg.validate()

    rng = random.Random(seed)
    d0 = [CardInstance.from_definition(cards.get(cid)) for cid in deck0]
    d1 = [CardInstance.from_definition(cards.get(cid)) for cid in deck1]
    if cfg.shuffle_opponent_deck:
        rng.shuffle(d1)

    state = MatchState(
        cards=cards,
        config=cfg,
        seed=seed,
        rng=rng,
        players=[
            new_side(player_name, cfg.max_health, d0, cfg.board_slots),
            new_side(opponent_name, cfg.max_health, d1, cfg.board_slots),
        ],
        clock=MatchClock(total_seconds=cfg.total_time_seconds, action_seconds=cfg.action_time_seconds),
        log=log if log is not None else MatchLog(),
    )
    state.log.add(
        f"New match started with {cfg.board_slots} slots. "
        f"Total time: {cfg.total_time_seconds} s, action time: {cfg.action_time_seconds} s."
    )

    for _ in range(cfg.starting_hand):
        _draw_one(state, PLAYER)
        _draw_one(state, OPPONENT)

    if cfg.opponent_opening_card:
        opening = choose_opening_placement(state, OPPONENT)
        if opening is None:
            state.log.add("Opponent has no opening card to place.")
        else:
            card = _place(state, OPPONENT, opening)
            state.log.add(f"Opponent places opening card {card.name} in slot {opening.slot}.")

    check_outcome(state)
    return state


def replay(
    cards: CardDatabase,
    deck0: Sequence[str],
    deck1: Sequence[str],
    seed: int,
    actions: Iterable[Action],
    config: MatchConfig | None = None,
    player_name: str = "Player",
) -> MatchState:
    state = new_match(cards=cards, deck0=deck0, deck1=deck1, seed=seed, config=config, player_name=player_name)
    for a in actions:
        step(state, a)
        if state.outcome is not None:
            break
    return state

from __future__ import annotations

from lastturn.engine.actions import ClockTickAction, PlaceCardAction, SelectCardAction
from lastturn.engine.match import new_match, replay, step
from lastturn.engine.serialize import snapshot
from lastturn.engine.types import MatchConfig, TurnPhase
from lastturn.paths import get_paths
from lastturn.services.content import ContentService


def _load_cards():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_cards_db()


def _choose_actions(state, turn: int) -> list[object]:
    ps = state.player
    # One total-clock second per turn; every third turn the action clock runs out
    actions: list[object] = [ClockTickAction(clock="total")]
    empty = ps.empty_slots()
    if turn % 3 == 2 or state.phase != TurnPhase.AWAITING_PLAYER or not ps.hand or not empty:
        actions.extend([ClockTickAction(clock="action")] * state.clock.remaining_action)
        return actions
    actions.append(SelectCardAction(card_id=ps.hand[-1].card_id))
    actions.append(PlaceCardAction(slot=empty[-1]))
    return actions


def test_engine_determinism_replay() -> None:
    cards = _load_cards()
    deck = cards.deck_order()
    config = MatchConfig(board_slots=3, total_time_seconds=200, action_time_seconds=2)

    seed = 424242
    state1 = new_match(cards, deck, deck, seed=seed, config=config)

    actions = []
    for turn in range(30):
        if state1.outcome is not None:
            break
        for a in _choose_actions(state1, turn):
            actions.append(a)
            step(state1, a)
            if state1.outcome is not None:
                break

    snap1 = snapshot(state1)

    state2 = replay(cards, deck, deck, seed=seed, actions=actions, config=config)
    snap2 = snapshot(state2)

    assert snap1 == snap2


def test_health_stays_in_bounds_through_a_full_match() -> None:
    cards = _load_cards()
    deck = cards.deck_order()
    state = new_match(cards, deck, deck, seed=99, config=MatchConfig(action_time_seconds=1))

    for turn in range(400):
        if state.outcome is not None:
            break
        for a in _choose_actions(state, turn):
            step(state, a)
            for side in state.players:
                assert 0 <= side.health <= side.max_health
                for slot in side.board:
                    assert slot.card is None or 0 < slot.card.health <= slot.card.max_health

    assert state.outcome is not None

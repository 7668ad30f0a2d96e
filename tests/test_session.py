from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable

import pytest

import lastturn.services.session as session_module
from lastturn.engine.actions import ClockTickAction, PlaceCardAction
from lastturn.engine.match import step
from lastturn.engine.state import StepResult
from lastturn.engine.types import Outcome, TurnPhase
from lastturn.paths import get_paths
from lastturn.services.content import ContentService
from lastturn.services.results import JsonlResultStore, MemoryResultSink
from lastturn.services.session import MatchSession


def _session(sink=None, tick_interval: float = 0.01) -> MatchSession:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return MatchSession.from_content(content, result_sink=sink, tick_interval=tick_interval, seed=5)


def _wait_for(cond: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if cond():
            return True
        time.sleep(0.01)
    return cond()


def test_start_then_reset_leaves_match_running() -> None:
    with _session(tick_interval=60.0) as session:
        session.start_match(4, 180, 30, "Ana")
        assert not session.reset_result_event()
        assert session.outcome is None
        assert session.pending_result() is None
        assert session.clocks_running
        assert session.phase == TurnPhase.AWAITING_PLAYER
        snap = session.snapshot()
        assert snap["players"][0]["name"] == "Ana"  # type: ignore[index]
        assert snap["board_size"] == 4


def test_action_clock_forfeits_in_background() -> None:
    with _session() as session:
        session.start_match(4, 10_000, 2, "Ana")
        assert _wait_for(lambda: any("action time ran out" in line for line in session.log_lines()))
        snap = session.snapshot()
        board = snap["players"][0]["board"]  # type: ignore[index]
        assert all(slot["card"] is None for slot in board)


def test_total_clock_ends_match_and_hands_off_once() -> None:
    sink = MemoryResultSink()
    with _session(sink) as session:
        session.start_match(4, 3, 10_000, "Ana")
        assert _wait_for(lambda: session.outcome is not None)
        assert session.outcome == Outcome.DRAW
        assert _wait_for(lambda: not session.clocks_running)
        assert _wait_for(lambda: len(sink.results) == 1)
        result = session.pending_result()
        assert result is not None
        assert result.id == sink.results[0].id
        assert result.player_name == "Ana"
        assert session.remaining_total_time == 0

        assert session.reset_result_event()
        assert session.pending_result() is None
        assert not session.reset_result_event()
        assert session.outcome == Outcome.DRAW
        assert len(sink.results) == 1


def test_stale_ticks_never_touch_a_new_match() -> None:
    with _session(tick_interval=60.0) as session:
        session.start_match(4, 100, 30, "Ana")
        session.start_match(3, 50, 20, "Bea")
        # Generation 1 belonged to the first match
        session._on_tick(1, "total")
        session._on_tick(1, "action")
        assert session.remaining_total_time == 50
        assert session.remaining_action_time == 20

        session._on_tick(2, "total")
        assert session.remaining_total_time == 49


def test_readers_never_turn_intents_away() -> None:
    with _session(tick_interval=60.0) as session:
        session.start_match(4, 100, 30, "Ana")
        stop = threading.Event()

        def poll() -> None:
            while not stop.is_set():
                session.snapshot()
                _ = session.phase, session.remaining_action_time

        reader = threading.Thread(target=poll, daemon=True)
        reader.start()
        try:
            results = [session.select_card(card_id) for card_id in ["warrior", "mage", "archer"] * 70]
            placed = session.place_card(0)
        finally:
            stop.set()
            reader.join(timeout=5.0)

        assert all(res.ok for res in results)
        assert placed.ok
        assert {"type": "CARD_PLACED", "side": 0, "slot": 0, "card_id": "archer"} in placed.events


def test_intents_during_combat_are_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    with _session(tick_interval=60.0) as session:
        session.start_match(4, 100, 30, "Ana")
        assert session.select_card("warrior").ok

        during: list[StepResult] = []
        real_step = session_module.step

        def step_with_interruption(state, action):
            if isinstance(action, PlaceCardAction):
                t = threading.Thread(target=lambda: during.append(session.select_card("mage")))
                t.start()
                t.join(timeout=5.0)
            return real_step(state, action)

        monkeypatch.setattr(session_module, "step", step_with_interruption)
        placed = session.place_card(0)

        assert placed.ok
        assert len(during) == 1
        assert not during[0].ok
        assert during[0].error == "Engine busy."
        assert {"type": "CARD_PLACED", "side": 0, "slot": 0, "card_id": "warrior"} in placed.events
        assert session.snapshot()["selected_card"] is None

        # Once the round is over intents go through again
        assert session.select_card("mage").ok


def test_every_match_is_handed_off_even_out_of_order() -> None:
    sink = MemoryResultSink()
    with _session(sink, tick_interval=60.0) as session:
        session.start_match(4, 1, 30, "Ana")
        first = session._state
        assert first is not None
        session.start_match(4, 1, 30, "Bea")
        session._on_tick(2, "total")
        assert session.outcome == Outcome.DRAW

        # The first match ends late, after the second already handed off
        step(first, ClockTickAction(clock="total"))
        session._finish(1, first)
        session._finish(1, first)

    assert sorted(r.player_name for r in sink.results) == ["Ana", "Bea"]


def test_observers_receive_snapshots() -> None:
    seen: list[dict[str, object]] = []
    with _session(tick_interval=60.0) as session:
        unsubscribe = session.subscribe(seen.append)
        session.start_match(4, 100, 30, "Ana")
        session.select_card("mage")
        assert seen[-1]["selected_card"] == "mage"
        count = len(seen)
        unsubscribe()
        session.select_card("warrior")
        assert len(seen) == count


def test_jsonl_store_round_trip(tmp_path: Path) -> None:
    store = JsonlResultStore(tmp_path / "results" / "matches.jsonl")
    assert store.load_all() == []
    with _session(store, tick_interval=60.0) as session:
        session.start_match(4, 1, 30, "Ana")
        session._on_tick(1, "total")
        assert session.outcome == Outcome.DRAW

    records = store.load_all()
    assert len(records) == 1
    assert records[0]["outcome"] == "DRAW"
    assert records[0]["player_name"] == "Ana"
    assert records[0]["board_size"] == 4
    assert "Total match time expired." in str(records[0]["log"])

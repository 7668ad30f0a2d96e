from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterator, Sequence

from lastturn.engine.actions import Action, ClockTickAction, PlaceCardAction, SelectCardAction
from lastturn.engine.match import new_match, step
from lastturn.engine.outcome import pending_result, reset_result_event
from lastturn.engine.serialize import snapshot
from lastturn.engine.state import Event, MatchResult, MatchState, StepResult
from lastturn.engine.types import CardDatabase, ClockKind, MatchConfig, Outcome, TurnPhase
from lastturn.paths import get_paths
from lastturn.services.content import ContentService
from lastturn.services.results import ResultSink

logger = logging.getLogger(__name__)

Observer = Callable[[dict[str, object]], None]


class SessionError(RuntimeError):
    pass


class ClockRunner:
    """Two daemon threads, one per countdown, each calling back once per interval."""

    def __init__(self, interval: float, on_tick: Callable[[ClockKind], None]) -> None:
        self._interval = interval
        self._on_tick = on_tick
        self._stop = threading.Event()
        self._threads = [
            threading.Thread(target=self._run, args=(kind,), name=f"lastturn-{kind}-clock", daemon=True)
            for kind in ("total", "action")
        ]

    def start(self) -> None:
        for t in self._threads:
            t.start()

    def stop(self, join: bool = True) -> None:
        self._stop.set()
        if not join:
            return
        current = threading.current_thread()
        for t in self._threads:
            if t is not current and t.is_alive():
                t.join(timeout=max(1.0, self._interval * 2))

    @property
    def is_running(self) -> bool:
        return not self._stop.is_set() and any(t.is_alive() for t in self._threads)

    def _run(self, kind: ClockKind) -> None:
        while not self._stop.wait(self._interval):
            self._on_tick(kind)


class MatchSession:
    """Owns the current match and serializes every mutation of it.

    Clock ticks and readers wait for the lock. A user intent is rejected if a
    transition (combat or the opponent turn) is running or finished while it
    waited; otherwise it waits like any other caller. Each match carries a
    generation number so ticks scheduled for an older match are discarded.
    """

    def __init__(
        self,
        cards: CardDatabase,
        *,
        rules: MatchConfig | None = None,
        result_sink: ResultSink | None = None,
        tick_interval: float = 1.0,
        seed: int | None = None,
        deck: Sequence[str] | None = None,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive.")
        self._cards = cards
        self._rules = rules or MatchConfig()
        self._sink = result_sink
        self._tick_interval = tick_interval
        self._seeds = random.Random(seed)
        self._deck = list(deck) if deck is not None else cards.deck_order()

        self._lock = threading.Lock()
        self._observers: list[Observer] = []
        self._state: MatchState | None = None
        self._runner: ClockRunner | None = None
        self._generation = 0
        self._handed_off: set[int] = set()
        # Set only while a step runs combat or the opponent turn; read without the lock.
        self._transitioning = threading.Event()
        self._transitions = 0
        self._handoff = ThreadPoolExecutor(max_workers=1, thread_name_prefix="lastturn-results")

    @classmethod
    def from_content(
        cls, content: ContentService | None = None, **kwargs: object
    ) -> "MatchSession":
        if content is None:
            paths = get_paths()
            content = ContentService(paths.data_dir, paths.schema_dir)
        return cls(content.load_cards_db(), rules=content.load_rules(), **kwargs)  # type: ignore[arg-type]

    # --- lifecycle -------------------------------------------------------

    def start_match(
        self,
        board_size: int,
        total_time_seconds: int,
        action_time_seconds: int,
        player_name: str,
    ) -> None:
        config = replace(
            self._rules,
            board_slots=board_size,
            total_time_seconds=total_time_seconds,
            action_time_seconds=action_time_seconds,
        )
        state = new_match(
            self._cards,
            self._deck,
            self._deck,
            seed=self._seeds.randrange(2**31),
            config=config,
            player_name=player_name or "Player",
        )

        with self._lock:
            self._generation += 1
            generation = self._generation
            old_runner = self._runner
            self._state = state
            self._runner = None
            if not state.is_over:
                self._runner = ClockRunner(
                    self._tick_interval, lambda kind: self._on_tick(generation, kind)
                )
            runner = self._runner
            snap = snapshot(state, include_log=True)

        # Joined outside the lock: a stale tick may be waiting on it.
        if old_runner is not None:
            old_runner.stop()
        if runner is not None:
            runner.start()
        logger.info(
            "Match %d started: %d slots, %ds total, %ds per action",
            generation,
            board_size,
            total_time_seconds,
            action_time_seconds,
        )
        self._after_change(generation, state, state.event_log, snap)

    def close(self) -> None:
        with self._lock:
            self._generation += 1
            runner = self._runner
            self._runner = None
        if runner is not None:
            runner.stop()
        # Pending hand-offs are flushed before close returns.
        self._handoff.shutdown(wait=True)
        logger.info("Session closed")

    def __enter__(self) -> "MatchSession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # --- intents ---------------------------------------------------------

    def select_card(self, card_id: str) -> StepResult:
        return self._apply_intent(SelectCardAction(card_id=card_id))

    def place_card(self, slot: int) -> StepResult:
        return self._apply_intent(PlaceCardAction(slot=slot))

    def _busy(self, action: Action) -> StepResult:
        logger.debug("Intent %r rejected: transition in progress", action)
        return StepResult(ok=False, events=[], error="Engine busy.")

    def _apply_intent(self, action: Action) -> StepResult:
        if self._transitioning.is_set():
            return self._busy(action)
        seen = self._transitions
        with self._lock:
            if self._transitions != seen:
                return self._busy(action)
            state = self._require_state()
            generation = self._generation
            with self._transition(isinstance(action, PlaceCardAction)):
                res = step(state, action)
            snap = snapshot(state, include_log=True)
        self._after_change(generation, state, res.events, snap)
        return res

    @contextmanager
    def _transition(self, active: bool) -> Iterator[None]:
        """Marks a step that may run combat; must be entered with the lock held."""
        if not active:
            yield
            return
        self._transitioning.set()
        try:
            yield
        finally:
            self._transitions += 1
            self._transitioning.clear()

    # --- clocks ----------------------------------------------------------

    def _on_tick(self, generation: int, kind: ClockKind) -> None:
        with self._lock:
            if generation != self._generation or self._state is None:
                logger.debug("Discarding %s tick from stale match %d", kind, generation)
                return
            state = self._state
            if state.is_over:
                return
            # The last action second forfeits the turn and runs the opponent's.
            forfeits = (
                kind == "action"
                and state.phase == TurnPhase.AWAITING_PLAYER
                and state.clock.running
                and state.clock.remaining_action <= 1
            )
            with self._transition(forfeits):
                res = step(state, ClockTickAction(clock=kind))
            snap = snapshot(state, include_log=True)
        self._after_change(generation, state, res.events, snap)

    # --- results and observation ----------------------------------------

    def _after_change(
        self, generation: int, state: MatchState, events: Sequence[Event], snap: dict[str, object]
    ) -> None:
        if any(e.get("type") == "GAME_ENDED" for e in events):
            self._finish(generation, state)
        for fn in list(self._observers):
            try:
                fn(snap)
            except Exception:
                logger.exception("Match observer failed")

    def _finish(self, generation: int, state: MatchState) -> None:
        with self._lock:
            if generation in self._handed_off:
                return
            self._handed_off.add(generation)
            runner = self._runner if generation == self._generation else None
            result = state.result.result if state.result is not None else None
        if runner is not None:
            # May run on a clock thread, which cannot join itself.
            runner.stop(join=False)
        logger.info("Match %d ended: %s", generation, state.outcome.value if state.outcome else None)
        if result is None or self._sink is None:
            return
        # The sink may block on I/O; the caller (often a clock thread) does not wait for it.
        try:
            self._handoff.submit(self._save_result, result)
        except RuntimeError:
            # Session already closed: hand off on this thread instead.
            self._save_result(result)

    def _save_result(self, result: MatchResult) -> None:
        assert self._sink is not None
        try:
            self._sink.save(result)
        except Exception:
            logger.exception("Result sink failed for match %s", result.id)

    def subscribe(self, fn: Observer) -> Callable[[], None]:
        self._observers.append(fn)

        def unsubscribe() -> None:
            if fn in self._observers:
                self._observers.remove(fn)

        return unsubscribe

    def pending_result(self) -> MatchResult | None:
        with self._lock:
            return pending_result(self._require_state())

    def reset_result_event(self) -> bool:
        with self._lock:
            return reset_result_event(self._require_state())

    # --- read-only views -------------------------------------------------

    def _require_state(self) -> MatchState:
        if self._state is None:
            raise SessionError("No match started.")
        return self._state

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            return snapshot(self._require_state(), include_log=True)

    @property
    def phase(self) -> TurnPhase:
        with self._lock:
            return self._require_state().phase

    @property
    def outcome(self) -> Outcome | None:
        with self._lock:
            return self._require_state().outcome

    @property
    def remaining_total_time(self) -> int:
        with self._lock:
            return self._require_state().clock.remaining_total

    @property
    def remaining_action_time(self) -> int:
        with self._lock:
            return self._require_state().clock.remaining_action

    @property
    def clocks_running(self) -> bool:
        with self._lock:
            state = self._require_state()
            runner = self._runner
            return runner is not None and runner.is_running and state.clock.running

    def log_lines(self) -> list[str]:
        with self._lock:
            return self._require_state().log.lines()

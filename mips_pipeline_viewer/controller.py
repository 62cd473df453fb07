"""The cycle controller: owns the simulation state and advances it.

All actions run to completion under one lock, so a timer firing can never
interleave with a user action. Listeners are called after the lock is
released with a read-only :class:`SimulationSnapshot`.
"""
import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence

from .config import DEFAULT_TICK_MS
from .decoder import parse_word
from .errors import InvalidStateTransition
from .program import validate_words
from .schedule import EMPTY_SCHEDULE, compute_schedule
from .stages import Mode, Stage
from .state import ControllerState, SimulationSnapshot, SimulationState
from .ticker import Ticker, ThreadTicker

logger = logging.getLogger(__name__)

Listener = Callable[[SimulationSnapshot], None]

class CycleController:
    def __init__(self, ticker: Optional[Ticker] = None, mode=Mode.NORMAL, interval_ms: int = DEFAULT_TICK_MS):
        self.ticker = ticker if ticker is not None else ThreadTicker(interval_ms)
        self._state = SimulationState(mode=Mode.parse(mode))
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._generation = 0
        self.log: List[Dict] = []
        self.stalls = 0
        self.forwards = 0
        self.completed_instrs = 0
    @property
    def status(self) -> ControllerState:
        return self._state.status
    def snapshot(self) -> SimulationSnapshot:
        with self._lock:
            return SimulationSnapshot.of(self._state)
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe
    def _notify(self, snap: SimulationSnapshot):
        for listener in list(self._listeners):
            listener(snap)
    def set_interval(self, interval_ms: int):
        self.ticker.set_interval(interval_ms)
    def start_simulation(self, words: Sequence[str]) -> SimulationSnapshot:
        with self._lock:
            st = self._state
            if st.status is not ControllerState.IDLE:
                raise InvalidStateTransition("start", st.status)
            words = validate_words(words)
            parsed = [parse_word(w) for w in words]
            schedule = compute_schedule(parsed, st.mode)
            st.instructions = [w.lower() for w in words]
            st.words = parsed
            st.schedule = schedule
            st.current_cycle = 1
            st.status = ControllerState.RUNNING
            logger.info("start: %d instructions, mode=%s, max_cycles=%d", len(words), st.mode.value, schedule.max_cycles)
            self._record_cycle()
            if not self._check_finished():
                self._start_ticker()
            snap = SimulationSnapshot.of(st)
        self._notify(snap)
        return snap
    def pause_simulation(self) -> SimulationSnapshot:
        with self._lock:
            st = self._state
            if st.status is not ControllerState.RUNNING:
                raise InvalidStateTransition("pause", st.status)
            self._stop_ticker()
            st.status = ControllerState.PAUSED
            logger.info("pause at cycle %d", st.current_cycle)
            snap = SimulationSnapshot.of(st)
        self._notify(snap)
        return snap
    def resume_simulation(self) -> SimulationSnapshot:
        with self._lock:
            st = self._state
            if st.status is not ControllerState.PAUSED:
                raise InvalidStateTransition("resume", st.status)
            st.status = ControllerState.RUNNING
            logger.info("resume at cycle %d", st.current_cycle)
            self._start_ticker()
            snap = SimulationSnapshot.of(st)
        self._notify(snap)
        return snap
    def reset_simulation(self) -> SimulationSnapshot:
        with self._lock:
            st = self._state
            changed = st.status is not ControllerState.IDLE or bool(st.instructions) or st.current_cycle > 0
            self._stop_ticker()
            st.clear()
            self.log = []
            self.stalls = 0
            self.forwards = 0
            self.completed_instrs = 0
            snap = SimulationSnapshot.of(st)
        if changed:
            logger.info("reset")
            self._notify(snap)
        return snap
    def set_mode(self, mode) -> SimulationSnapshot:
        mode = Mode.parse(mode)
        with self._lock:
            st = self._state
            if mode is st.mode:
                return SimulationSnapshot.of(st)
            schedule = compute_schedule(st.words, mode) if st.words else EMPTY_SCHEDULE
            st.mode = mode
            st.schedule = schedule
            if st.status is not ControllerState.IDLE:
                if st.current_cycle >= schedule.max_cycles:
                    self._finish()
                elif st.status is ControllerState.FINISHED:
                    st.status = ControllerState.PAUSED
            logger.info("mode -> %s (cycle %d/%d)", mode.value, st.current_cycle, schedule.max_cycles)
            snap = SimulationSnapshot.of(st)
        self._notify(snap)
        return snap
    def tick(self) -> bool:
        """Advance one cycle if running. Returns False when the tick was ignored."""
        with self._lock:
            if self._state.status is not ControllerState.RUNNING:
                return False
            self._advance()
            snap = SimulationSnapshot.of(self._state)
        self._notify(snap)
        return True
    def step(self) -> SimulationSnapshot:
        """Advance exactly one cycle while paused."""
        with self._lock:
            st = self._state
            if st.status is not ControllerState.PAUSED:
                raise InvalidStateTransition("step", st.status)
            self._advance()
            snap = SimulationSnapshot.of(st)
        self._notify(snap)
        return snap
    def stats(self) -> Dict[str, int]:
        with self._lock:
            st = self._state
            in_flight = sum(1 for s in st.instruction_stages() if s is not None)
            return {
                "cycle": st.current_cycle,
                "max_cycles": st.max_cycles,
                "in_pipeline": in_flight,
                "completed": self.completed_instrs,
                "stalls": self.stalls,
                "forwards": self.forwards,
            }
    def _advance(self):
        st = self._state
        st.current_cycle += 1
        logger.debug("tick -> cycle %d", st.current_cycle)
        self._record_cycle()
        self._check_finished()
    def _check_finished(self) -> bool:
        if self._state.is_finished:
            self._finish()
            return True
        return False
    def _finish(self):
        self._stop_ticker()
        self._state.status = ControllerState.FINISHED
        logger.info("finished after %d cycles", self._state.current_cycle)
    def _start_ticker(self):
        self._generation += 1
        generation = self._generation
        self.ticker.start(lambda: self._on_timer(generation))
    def _stop_ticker(self):
        self._generation += 1
        self.ticker.cancel()
    def _on_timer(self, generation: int):
        with self._lock:
            # a firing that raced a pause/reset belongs to a cancelled run
            if generation != self._generation or self._state.status is not ControllerState.RUNNING:
                return
            self._advance()
            snap = SimulationSnapshot.of(self._state)
        self._notify(snap)
    def _record_cycle(self):
        st = self._state
        cycle = st.current_cycle
        events = {"cycle": cycle, "mode": st.mode.value, "actions": []}
        actions = events["actions"]
        for t in st.schedule.timeline:
            instr = st.instructions[t.index]
            stage = t.stage_at(cycle)
            if stage is Stage.IF:
                actions.append({"type": "fetched", "id": t.index, "instr": instr})
            if t.is_stalled_at(cycle):
                self.stalls += 1
                logger.debug("cycle %d: instruction %d stalled on %d", cycle, t.index, t.index - 1)
                actions.append({"type": "stalled", "id": t.index, "instr": instr, "dep_id": t.index - 1})
            if st.mode is Mode.FORWARDING and t.depends_on_previous and cycle == t.ex_cycle:
                self.forwards += 1
                actions.append({"type": "forwarded", "id": t.index, "instr": instr, "dep_id": t.index - 1})
            if cycle == t.wb_cycle:
                if t.decoded.writes:
                    actions.append({"type": "writeback", "id": t.index, "instr": instr, "result": f"${t.decoded.dest}"})
                self.completed_instrs += 1
                actions.append({"type": "completed", "id": t.index, "instr": instr})
        self.log.append(events)
        return events

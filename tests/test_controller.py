import pytest

from mips_pipeline_viewer.controller import CycleController
from mips_pipeline_viewer.errors import InvalidInstructionFormat, InvalidStateTransition
from mips_pipeline_viewer.stages import Mode, Stage
from mips_pipeline_viewer.state import ControllerState

from .conftest import ADD_USES_T0, LW_T0, SUB_USES_ADD

PROGRAM = [LW_T0, ADD_USES_T0]

def test_initial_snapshot_is_idle(controller):
    snap = controller.snapshot()
    assert snap.status is ControllerState.IDLE
    assert snap.instructions == ()
    assert snap.current_cycle == 0
    assert snap.max_cycles == 0
    assert not snap.is_running
    assert not snap.is_finished
    assert snap.status_label == "Idle"
    assert snap.progress == 0

def test_start_computes_schedule_and_starts_ticking(controller, ticker):
    controller.set_mode(Mode.STALL)
    snap = controller.start_simulation(PROGRAM)
    assert snap.status is ControllerState.RUNNING
    assert snap.current_cycle == 1
    assert snap.max_cycles == 7
    assert snap.instruction_stages == (Stage.IF, None)
    assert ticker.active

def test_start_normalises_case(controller):
    snap = controller.start_simulation(["8D280000"])
    assert snap.instructions == ("8d280000",)

@pytest.mark.parametrize("words", [[], ["8d28000"], ["8d280000", "zz280000"], ["8d2800000"], ["8d280000\n"], [" 8d280000"]])
def test_start_rejects_bad_words_without_mutation(controller, ticker, words):
    with pytest.raises(InvalidInstructionFormat):
        controller.start_simulation(words)
    snap = controller.snapshot()
    assert snap.status is ControllerState.IDLE
    assert snap.instructions == ()
    assert ticker.starts == 0

def test_bad_words_while_running_leave_run_alone(controller):
    controller.start_simulation(PROGRAM)
    before = controller.snapshot()
    with pytest.raises(InvalidStateTransition):
        controller.start_simulation(["nothex!!"])
    assert controller.snapshot() == before

def test_start_twice_is_rejected(controller, ticker):
    controller.start_simulation(PROGRAM)
    ticker.fire(2)
    before = controller.snapshot()
    with pytest.raises(InvalidStateTransition):
        controller.start_simulation([LW_T0])
    assert controller.snapshot() == before

def test_ticks_until_finished(controller, ticker):
    controller.set_mode("stall")
    controller.start_simulation(PROGRAM)
    ticker.fire(5)
    snap = controller.snapshot()
    assert snap.current_cycle == 6
    assert not snap.is_finished
    ticker.fire()
    snap = controller.snapshot()
    assert snap.current_cycle == 7
    assert snap.is_finished
    assert snap.status is ControllerState.FINISHED
    assert snap.status_label == "Finished"
    assert snap.progress == 100
    assert not ticker.active
    assert controller.tick() is False
    assert controller.snapshot().current_cycle == 7

def test_pause_and_resume_keep_the_cycle(controller, ticker):
    controller.start_simulation(PROGRAM)
    ticker.fire(2)
    snap = controller.pause_simulation()
    assert snap.current_cycle == 3
    assert snap.status_label == "Paused"
    assert not ticker.active
    assert controller.tick() is False
    snap = controller.resume_simulation()
    assert snap.current_cycle == 3
    assert snap.is_running
    ticker.fire()
    assert controller.snapshot().current_cycle == 4

def test_stale_timer_firing_after_pause_is_ignored(controller, ticker):
    controller.start_simulation(PROGRAM)
    stale = ticker._callback
    controller.pause_simulation()
    controller.resume_simulation()
    stale()
    assert controller.snapshot().current_cycle == 1
    ticker.fire()
    assert controller.snapshot().current_cycle == 2

def test_invalid_transitions(controller):
    with pytest.raises(InvalidStateTransition):
        controller.resume_simulation()
    with pytest.raises(InvalidStateTransition):
        controller.pause_simulation()
    with pytest.raises(InvalidStateTransition):
        controller.step()
    controller.start_simulation(PROGRAM)
    with pytest.raises(InvalidStateTransition):
        controller.resume_simulation()
    with pytest.raises(InvalidStateTransition):
        controller.step()
    controller.pause_simulation()
    with pytest.raises(InvalidStateTransition) as excinfo:
        controller.pause_simulation()
    assert excinfo.value.action == "pause"
    assert excinfo.value.state is ControllerState.PAUSED

def test_step_advances_one_cycle_while_paused(controller, ticker):
    controller.start_simulation(PROGRAM)
    controller.pause_simulation()
    snap = controller.step()
    assert snap.current_cycle == 2
    assert snap.status is ControllerState.PAUSED
    for _ in range(4):
        snap = controller.step()
    assert snap.current_cycle == 6
    assert snap.is_finished
    assert snap.status is ControllerState.FINISHED

def _drive_to(controller, ticker, state):
    if state is ControllerState.IDLE:
        return
    controller.start_simulation(PROGRAM)
    ticker.fire(2)
    if state is ControllerState.PAUSED:
        controller.pause_simulation()
    elif state is ControllerState.FINISHED:
        ticker.fire(10)

@pytest.mark.parametrize("state", list(ControllerState))
def test_reset_from_any_state(controller, ticker, state):
    _drive_to(controller, ticker, state)
    assert controller.status is state
    snap = controller.reset_simulation()
    assert snap.status is ControllerState.IDLE
    assert snap.instructions == ()
    assert snap.current_cycle == 0
    assert snap.max_cycles == 0
    assert not ticker.active
    assert controller.log == []
    assert controller.reset_simulation() == snap
    controller.start_simulation([LW_T0])
    assert controller.snapshot().current_cycle == 1

def test_reset_keeps_selected_mode(controller):
    controller.set_mode(Mode.FORWARDING)
    controller.start_simulation(PROGRAM)
    controller.reset_simulation()
    assert controller.snapshot().mode is Mode.FORWARDING

def test_set_mode_while_idle(controller):
    snap = controller.set_mode("stall")
    assert snap.mode is Mode.STALL
    assert snap.max_cycles == 0
    assert snap.status is ControllerState.IDLE

def test_set_mode_mid_run_keeps_cycle_and_reflows(controller, ticker):
    controller.start_simulation(PROGRAM)
    ticker.fire(2)
    controller.pause_simulation()
    assert controller.snapshot().instruction_stages == (Stage.EX, Stage.ID)
    snap = controller.set_mode(Mode.STALL)
    assert snap.current_cycle == 3
    assert snap.max_cycles == 7
    assert snap.status is ControllerState.PAUSED
    assert snap.instruction_stages == (Stage.EX, Stage.ID)
    assert snap.schedule.is_stalled_at(1, 3)
    controller.step()
    assert controller.snapshot().instruction_stages == (Stage.MEM, Stage.ID)

def test_set_mode_while_running_keeps_ticking(controller, ticker):
    controller.start_simulation(PROGRAM)
    ticker.fire()
    snap = controller.set_mode(Mode.STALL)
    assert snap.is_running
    assert ticker.active
    ticker.fire(10)
    assert controller.snapshot().current_cycle == 7

def test_set_mode_finishes_without_rewinding_the_cycle(controller, ticker):
    controller.set_mode(Mode.STALL)
    controller.start_simulation(PROGRAM)
    ticker.fire(10)
    assert controller.snapshot().current_cycle == 7
    snap = controller.set_mode(Mode.NORMAL)
    assert snap.current_cycle == 7
    assert snap.max_cycles == 6
    assert snap.is_finished
    assert snap.status is ControllerState.FINISHED
    assert snap.progress == 100

def test_set_mode_past_new_end_while_running(controller, ticker):
    controller.set_mode(Mode.STALL)
    controller.start_simulation([LW_T0, ADD_USES_T0, SUB_USES_ADD])
    ticker.fire(7)
    assert controller.snapshot().current_cycle == 8
    snap = controller.set_mode(Mode.NORMAL)
    assert snap.current_cycle == 8
    assert snap.max_cycles == 7
    assert snap.status is ControllerState.FINISHED
    assert not ticker.active
    snap = controller.set_mode(Mode.STALL)
    assert snap.current_cycle == 8
    assert snap.status is ControllerState.PAUSED
    controller.resume_simulation()
    ticker.fire()
    snap = controller.snapshot()
    assert snap.current_cycle == 9
    assert snap.is_finished

def test_set_mode_reopens_finished_run_when_schedule_grows(controller, ticker):
    controller.start_simulation(PROGRAM)
    ticker.fire(10)
    assert controller.status is ControllerState.FINISHED
    snap = controller.set_mode(Mode.STALL)
    assert snap.current_cycle == 6
    assert snap.max_cycles == 7
    assert not snap.is_finished
    assert snap.status is ControllerState.PAUSED
    controller.resume_simulation()
    ticker.fire()
    assert controller.snapshot().is_finished

def test_set_same_mode_is_a_no_op(controller, ticker):
    controller.start_simulation(PROGRAM)
    before = controller.snapshot()
    assert controller.set_mode(Mode.NORMAL) == before

def test_listeners_receive_snapshots(controller, ticker):
    seen = []
    unsubscribe = controller.subscribe(seen.append)
    controller.start_simulation(PROGRAM)
    ticker.fire()
    controller.pause_simulation()
    assert [s.current_cycle for s in seen] == [1, 2, 2]
    assert seen[-1].status is ControllerState.PAUSED
    unsubscribe()
    controller.reset_simulation()
    assert len(seen) == 3

def test_event_log_and_stats_in_stall_mode(controller, ticker):
    controller.set_mode(Mode.STALL)
    controller.start_simulation(PROGRAM)
    ticker.fire(10)
    log = controller.log
    assert [e["cycle"] for e in log] == list(range(1, 8))
    assert log[0]["actions"] == [{"type": "fetched", "id": 0, "instr": LW_T0}]
    stalled = [a for a in log[2]["actions"] if a["type"] == "stalled"]
    assert stalled == [{"type": "stalled", "id": 1, "instr": ADD_USES_T0, "dep_id": 0}]
    types = [a["type"] for a in log[4]["actions"]]
    assert types == ["writeback", "completed"]
    stats = controller.stats()
    assert stats["stalls"] == 1
    assert stats["forwards"] == 0
    assert stats["completed"] == 2

def test_forwarding_mode_records_bypass(controller, ticker):
    controller.set_mode(Mode.FORWARDING)
    controller.start_simulation([LW_T0, ADD_USES_T0, SUB_USES_ADD])
    ticker.fire(10)
    snap = controller.snapshot()
    assert snap.max_cycles == 7
    forwarded = [(e["cycle"], a["id"]) for e in controller.log for a in e["actions"] if a["type"] == "forwarded"]
    assert forwarded == [(4, 1), (5, 2)]
    assert controller.stats()["forwards"] == 2
    assert controller.stats()["stalls"] == 0

def test_default_ticker_is_threaded():
    from mips_pipeline_viewer.ticker import ThreadTicker
    assert isinstance(CycleController().ticker, ThreadTicker)

from mips_pipeline_viewer.config import DEFAULT_TICK_MS, default_mode_name, tick_interval_ms
from mips_pipeline_viewer.stages import Mode, Stage

def test_tick_interval_override():
    assert tick_interval_ms({}) == DEFAULT_TICK_MS
    assert tick_interval_ms({"PIPELINE_VIEWER_TICK_MS": "250"}) == 250

def test_bad_tick_interval_falls_back(caplog):
    assert tick_interval_ms({"PIPELINE_VIEWER_TICK_MS": "fast"}) == DEFAULT_TICK_MS
    assert tick_interval_ms({"PIPELINE_VIEWER_TICK_MS": "-5"}) == DEFAULT_TICK_MS
    assert "PIPELINE_VIEWER_TICK_MS" in caplog.text

def test_mode_override():
    assert default_mode_name({}) is None
    assert default_mode_name({"PIPELINE_VIEWER_MODE": " Stall "}) == "stall"
    assert default_mode_name({"PIPELINE_VIEWER_MODE": "turbo"}) is None

def test_stage_metadata():
    assert [s.label for s in Stage] == ["IF", "ID", "EX", "MEM", "WB"]
    assert Stage.MEM.title == "Memory Access"
    assert Stage.WB.description
    assert Mode.parse("FORWARDING") is Mode.FORWARDING

import pytest

try:
    import swimc as sc
except Exception as e:  # pragma: no cover
    pytest.skip(f"swimc unavailable: {e}", allow_module_level=True)


def test_interval_drives_duration():
    m = sc.measure_text("3x100 Free @ 1:30")
    assert (m.yardage, m.duration_seconds) == (300, 270)


def test_fallback_pace_without_interval():
    m = sc.measure_text("400 Free")
    assert (m.yardage, m.duration_seconds) == (400, 360)
    # 25 * 90 / 100 = 22.5, rounded up
    assert sc.measure_text("25 Fly").duration_seconds == 23


def test_single_rep_with_interval():
    assert sc.measure_text("200 Smooth @ 4:00").duration_seconds == 240


def test_break_line_inside_swim_section_is_ignored():
    m = sc.measure_text("200 Free @ 3:00\nBreak 10 seconds\n100 Back @ 1:30")
    assert (m.yardage, m.duration_seconds) == (300, 270)
    assert sc.measure_text("Break 10 seconds").yardage == 0
    assert sc.measure_text("Break 10 seconds").duration_seconds == 0


def test_repeat_block_totals():
    m = sc.measure_text("3 x {\n100 Free @ 1:30\n50 Kick\n}")
    assert m.yardage == 450
    assert m.duration_seconds == 3 * (90 + 45)
    assert len(m.lines) == 6


def test_zero_interval_falls_back_to_pace():
    assert sc.measure_text("100 @ 0").duration_seconds == 90


def test_dangling_multiplier_contributes_nothing():
    m = sc.measure_text("4 x\n100 Free @ 1:30")
    assert (m.yardage, m.duration_seconds) == (100, 90)


def test_break_section():
    assert sc.measure_section(sc.BreakSection("1:00")) == sc.Measurement(0, 60)
    assert sc.measure_section(sc.BreakSection("soon")).duration_seconds == 0
    assert sc.measure_section(sc.BreakSection("")).duration_seconds == 0


def test_pace_is_configurable():
    cfg = sc.EngineConfig(fallback_pace_seconds=120)
    assert cfg.fallback_seconds(250) == 300
    assert sc.measure_text("400 Free", config=cfg).duration_seconds == 480
    assert sc.DEFAULT_CONFIG.fallback_seconds(0) == 0


def test_interval_after_on_wording():
    assert sc.measure_text("4x50 Kick on back @ 1:00").duration_seconds == 240

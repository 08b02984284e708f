import pytest

try:
    import swimc as sc
except Exception as e:  # pragma: no cover
    pytest.skip(f"swimc unavailable: {e}", allow_module_level=True)


def test_reps_distance_and_interval():
    f = sc.interpret_line("3x100 Free @ 1:30")
    assert (f.reps, f.distance, f.yardage, f.interval) == (3, 100, 300, 90)


def test_on_keyword_and_spaced_multiplier():
    f = sc.interpret_line("4 X 50 on :45")
    assert (f.reps, f.distance, f.interval) == (4, 50, 45)


def test_only_first_interval_is_taken():
    f = sc.interpret_line("8×25 @ :40/:45")
    assert f.yardage == 200
    assert f.interval == 40


def test_bare_distance_has_one_rep():
    f = sc.interpret_line("400 Free")
    assert (f.reps, f.distance, f.interval) == (1, 400, None)


def test_dangling_multiplier_line_has_no_yardage():
    f = sc.interpret_line("4 x")
    assert f.yardage == 0
    assert f.reps == 4


def test_leading_clock_is_not_a_distance():
    assert sc.interpret_line("1:30 rest").yardage == 0


def test_break_marker():
    f = sc.interpret_line("Break 10 seconds")
    assert f.is_break
    assert f.yardage == 0
    assert not sc.interpret_line("Breakout drills 100").is_break


def test_interval_token_punctuation_and_garbage():
    assert sc.interpret_line("200 Smooth @ 4:00,").interval == 240
    assert sc.interpret_line("100 @ fast").interval is None


def test_tags_fall_back_to_choice_and_swim(acronyms):
    f = sc.interpret_line("4x100 Free @ 1:30", acronyms)
    assert f.strokes == ("Free",)
    assert f.styles == ("Swim",)
    f = sc.interpret_line("200 easy", acronyms)
    assert f.strokes == ("Choice",)
    assert f.styles == ("Swim",)


def test_whole_word_case_insensitive_matching(acronyms):
    assert sc.interpret_line("100 free", acronyms).strokes == ("Free",)
    assert sc.interpret_line("100 Freestyle", acronyms).strokes == ("Free",)
    assert sc.interpret_line("100 Freedom", acronyms).strokes == ("Choice",)
    f = sc.interpret_line("200 Back Kick", acronyms)
    assert f.strokes == ("Back",)
    assert f.styles == ("Kick",)


def test_multiple_strokes_follow_table_order(acronyms):
    assert sc.interpret_line("200 Fly/Back", acronyms).strokes == ("Back", "Fly")


def test_combined_style_letters(acronyms):
    assert sc.interpret_line("4x50 K/S/D/S @ :50", acronyms).styles == ("Kick", "Swim", "Drill", "Swim")
    assert sc.interpret_line("4x50 K-P-D-S", acronyms).styles == ("Kick", "Pull", "Drill", "Swim")


def test_combined_letters_come_from_the_table():
    table = {"strokes": {}, "styles": {"Kick": ["K"], "Scull": ["C"]}}
    assert sc.interpret_line("4x50 K/C", table).styles == ("Kick", "Scull")


def test_empty_table_tags_everything_choice_swim():
    f = sc.interpret_line("200 Back Kick", {})
    assert f.strokes == ("Choice",)
    assert f.styles == ("Swim",)


def test_on_inside_wording_is_not_an_interval():
    f = sc.interpret_line("4x50 Kick on back @ 1:00")
    assert f.interval == 60
    assert sc.interpret_line("100 Free on the wall").interval is None
    assert sc.interpret_line("100 Back on 1:45").interval == 105

import json

import pytest

try:
    import swimc as sc
except Exception as e:  # pragma: no cover
    pytest.skip(f"swimc unavailable: {e}", allow_module_level=True)


def test_default_table_without_path(monkeypatch):
    monkeypatch.delenv(sc.ACRONYMS_ENV, raising=False)
    table = sc.load_acronyms()
    assert table == sc.AcronymTable.from_mapping(sc.DEFAULT_ACRONYMS)
    assert "Free" in dict(table.strokes)


def test_load_from_file_and_env(tmp_path, monkeypatch):
    p = tmp_path / "acr.json"
    p.write_text(json.dumps({"strokes": {"Free": ["FR"]}, "styles": {"Kick": ["K"]}}), encoding="utf-8")
    table = sc.load_acronyms(p)
    assert table.to_dict() == {"strokes": {"Free": ["FR"]}, "styles": {"Kick": ["K"]}}
    monkeypatch.setenv(sc.ACRONYMS_ENV, str(p))
    assert sc.load_acronyms() == table


def test_missing_file_is_a_config_error(tmp_path):
    with pytest.raises(sc.AcronymConfigError) as ei:
        sc.load_acronyms(tmp_path / "nope.json")
    assert sc.ACRONYMS_ENV in str(ei.value)


def test_bad_json_and_bad_shape(tmp_path):
    p = tmp_path / "bad.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(sc.AcronymConfigError):
        sc.load_acronyms(p)
    p.write_text(json.dumps({"strokes": {"Free": "FR"}, "styles": {}}), encoding="utf-8")
    with pytest.raises(sc.AcronymConfigError) as ei:
        sc.load_acronyms(p)
    assert "strokes.Free must be an array of strings" in str(ei.value)


def test_validate_acronyms_messages():
    assert sc.validate_acronyms(sc.DEFAULT_ACRONYMS) == []
    assert sc.validate_acronyms([]) == ["acronyms config must be an object"]
    errs = sc.validate_acronyms({"strokes": {"Free": ["FR", 3]}})
    assert "strokes.Free[1] must be a string" in errs
    assert "`styles` must be an object" in errs


def test_from_mapping_is_tolerant():
    table = sc.AcronymTable.from_mapping({"strokes": {"Free": ["FR", 7, "  "], "Bad": "x"}, "styles": None})
    assert table.strokes == (("Free", ("FR",)),)
    assert table.styles == ()
    assert sc.AcronymTable.from_mapping(None) == sc.AcronymTable()


def test_table_is_a_snapshot():
    src = {"strokes": {"Free": ["FR"]}, "styles": {}}
    table = sc.AcronymTable.from_mapping(src)
    src["strokes"]["Free"].append("Freestyle")
    assert table.strokes == (("Free", ("FR",)),)
    with pytest.raises(Exception):
        table.strokes = ()


def test_load_practice_object_and_list(write_practice, tmp_path):
    p = write_practice([{"type": "swim", "content": "400 Free"}], title="Tue", startTime="05:30")
    practice = sc.load_practice(p)
    assert practice["title"] == "Tue"
    assert practice["start"] == "05:30"
    assert practice["sections"] == [sc.SwimSection("400 Free")]

    q = tmp_path / "list.json"
    q.write_text(json.dumps([{"type": "break", "content": "1:00"}]), encoding="utf-8")
    practice = sc.load_practice(q)
    assert practice["title"] == "list"
    assert practice["start"] is None
    assert practice["sections"] == [sc.BreakSection("1:00")]


def test_load_practice_errors(tmp_path):
    with pytest.raises(sc.PracticeFormatError):
        sc.load_practice(tmp_path / "missing.json")
    p = tmp_path / "bad.json"
    p.write_text("[", encoding="utf-8")
    with pytest.raises(sc.PracticeFormatError):
        sc.load_practice(p)
    p.write_text("42", encoding="utf-8")
    with pytest.raises(sc.PracticeFormatError):
        sc.load_practice(p)


def test_errors_share_a_base():
    assert issubclass(sc.AcronymConfigError, sc.SwimcError)
    assert issubclass(sc.PracticeFormatError, sc.SwimcError)

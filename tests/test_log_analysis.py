import json
from pathlib import Path

import pytest

from log_analysis import (
    analyze_answers,
    analyze_results,
    apply_suggestions,
    apply_suggestions_file,
    build_suggestions,
    main,
    parse_export,
    suggest_weight,
)


def _lines(qid, picks, axis="behavior", version=1, weight=1):
    return [f"{1000 + i},{qid},{axis},{version},{weight},{pick}" for i, pick in enumerate(picks)]


def test_parse_export_requires_header():
    with pytest.raises(ValueError):
        parse_export("nothing,here\n1,2,3\n")


def test_parse_export_without_results_section():
    text = "ts,id,axis,version,weight,pick\n1,1,behavior,1,1,A\n\n"
    answer_lines, result_lines = parse_export(text)
    assert answer_lines == ["1,1,behavior,1,1,A"]
    assert result_lines == []


def test_suggest_weight_curve():
    assert suggest_weight(0.5) == pytest.approx(1.0)
    assert suggest_weight(1.0) == pytest.approx(1.3)
    assert suggest_weight(0.0) == pytest.approx(0.75)


def test_even_split_is_most_informative():
    lines = _lines(1, "AB" * 10) + _lines(2, "A" * 20, axis="value")
    stats = analyze_answers(lines, min_n=20)

    assert [s["id"] for s in stats] == [1, 2]

    even, one_sided = stats
    assert even["pA"] == 0.5
    assert even["info"] == 1.0
    assert even["skew"] == 0.0
    assert even["weight_suggested"] == pytest.approx(1.3)

    assert one_sided["info"] == 0.0
    assert one_sided["skew"] == 1.0
    assert one_sided["weight_suggested"] == pytest.approx(0.75)


def test_no_suggestion_below_min_n():
    stats = analyze_answers(_lines(1, "AB" * 5), min_n=20)
    assert stats[0]["n"] == 10
    assert stats[0]["weight_suggested"] is None
    assert build_suggestions(stats) == []


def test_weight_average():
    lines = _lines(1, "AA", weight=1) + _lines(1, "BB", weight=2)
    (stats,) = analyze_answers(lines, min_n=1)
    assert stats["weight_avg"] == 1.5


def test_analyze_results():
    assert analyze_results(["1,T1,T2,0.5", "2,T3,T4,0.7"]) == {"n": 2, "avgConf": 0.6}
    assert analyze_results([]) == {"n": 0, "avgConf": 0.0}


def test_apply_suggestions_sets_question_weight_only():
    questions = [
        {"id": 1, "axis": "behavior", "version": 1, "options": [{"key": "A", "weight": 0.8}]},
        {"id": 2, "axis": "value", "version": 1, "options": []},
        {"id": 3, "axis": "relation", "version": 2, "options": []},
        {"id": 4, "axis": "decision", "options": []},
    ]
    suggestions = [
        {"id": 1, "axis": "behavior", "version": 1, "suggested": 1.234},
        {"id": 2, "axis": "behavior", "version": 1, "suggested": 1.3},
        {"id": 3, "axis": "relation", "version": 1, "suggested": 1.3},
        {"id": 4, "axis": "decision", "version": 1, "suggested": 9},
    ]

    assert apply_suggestions(suggestions, questions) == 2
    assert questions[0]["weight"] == 1.23
    assert questions[0]["options"][0]["weight"] == 0.8
    assert "weight" not in questions[1]
    assert "weight" not in questions[2]
    assert questions[3]["weight"] == 2.0


def test_apply_suggestions_file_keeps_backup(tmp_path):
    questions_path = tmp_path / "questions.json"
    questions_path.write_text(json.dumps([{"id": 7, "axis": "value", "options": []}]), encoding="utf-8")
    suggestions_path = tmp_path / "weight_suggestions.json"
    suggestions_path.write_text(json.dumps({"suggestions": [{"id": 7, "axis": "value", "suggested": 0.9}]}), encoding="utf-8")

    updated, backup = apply_suggestions_file(str(suggestions_path), str(questions_path))

    assert updated == 1
    assert json.loads(questions_path.read_text(encoding="utf-8"))[0]["weight"] == 0.9
    assert "weight" not in json.loads(Path(backup).read_text(encoding="utf-8"))[0]


def test_apply_suggestions_file_rejects_empty(tmp_path):
    suggestions_path = tmp_path / "s.json"
    suggestions_path.write_text(json.dumps({"suggestions": []}), encoding="utf-8")
    with pytest.raises(ValueError):
        apply_suggestions_file(str(suggestions_path), str(tmp_path / "q.json"))


def test_cli_analyze_writes_suggestions(tmp_path, capsys):
    export = tmp_path / "export.csv"
    export.write_text(
        "ts,id,axis,version,weight,pick\n"
        + "\n".join(_lines(5, "AB" * 3))
        + "\nresults: ts,primary,secondary,conf\n1,T1,T2,0.4\n",
        encoding="utf-8",
    )
    out = tmp_path / "suggestions.json"

    assert main(["analyze", str(export), "--min-n", "6", "--out", str(out)]) == 0

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["results"] == {"n": 1, "avgConf": 0.4}
    assert payload["suggestions"] == [{"id": 5, "axis": "behavior", "version": 1, "suggested": 1.3}]
    assert "Per-question summary" in capsys.readouterr().out


def test_cli_apply_reports_missing_files(tmp_path):
    assert main(["apply", str(tmp_path / "missing.json"), str(tmp_path / "q.json")]) == 1


def test_non_finite_fields_fall_back_like_missing_values():
    (stats,) = analyze_answers(["1,inf,behavior,1,1,A"], min_n=1)
    assert stats["id"] == 0

    (stats,) = analyze_answers(["1,1,behavior,1,nan,A", "2,1,behavior,1,inf,B"], min_n=1)
    assert stats["weight_avg"] == 1.0

    assert analyze_results(["1,T1,T2,nan"]) == {"n": 1, "avgConf": 0.0}


def test_non_finite_suggestion_is_skipped():
    questions = [{"id": 1, "axis": "behavior", "options": []}, {"id": 2, "axis": "value", "options": []}]
    suggestions = [{"id": 1, "suggested": float("nan")}, {"id": 2, "suggested": float("inf")}]

    assert apply_suggestions(suggestions, questions) == 0
    assert all("weight" not in q for q in questions)


def test_nan_literal_in_suggestions_file_is_skipped(tmp_path):
    questions_path = tmp_path / "questions.json"
    questions_path.write_text(json.dumps([{"id": 1, "axis": "value", "options": []}]), encoding="utf-8")
    suggestions_path = tmp_path / "s.json"
    suggestions_path.write_text('{"suggestions": [{"id": 1, "suggested": NaN}]}', encoding="utf-8")

    updated, _ = apply_suggestions_file(str(suggestions_path), str(questions_path))

    assert updated == 0
    assert "weight" not in json.loads(questions_path.read_text(encoding="utf-8"))[0]


def test_weights_round_half_up():
    questions = [{"id": 1, "axis": "behavior", "options": []}]
    assert apply_suggestions([{"id": 1, "suggested": 1.125}], questions) == 1
    assert questions[0]["weight"] == 1.13

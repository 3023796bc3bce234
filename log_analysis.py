# ============================================================
# LOG ANALYSIS — QUESTION WEIGHT SUGGESTIONS
# ============================================================
# Offline tool. Reads an export produced by data_logger.export_logs()
# and looks at how each question splits people:
#
# - info = 4 * pA * (1 - pA): 1.0 for a 50/50 split, 0 for one-sided.
# - Questions that split well get a higher suggested weight,
#   one-sided ones a lower one (only once enough answers exist).
#
# Suggestions are written to JSON and applied to the question file
# by hand with the `apply` command; the engine never learns online.
# ============================================================

import argparse
import json
import logging
import math
import os
import shutil
import time
from datetime import datetime, timezone

from config import MIN_N, QUESTIONS_PATH, configure_logging
from data_logger import ANSWER_HEADER

logger = logging.getLogger(__name__)

SUGGESTED_MIN, SUGGESTED_MAX = 0.75, 1.5
APPLIED_MIN, APPLIED_MAX = 0.5, 2.0


def _to_num(value, default=0.0):
    """float(value), or `default` for anything unparsable, infinite or NaN."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _round2(x):
    # Half-up to two decimals, not round()'s half-to-even.
    return math.floor(x * 100 + 0.5) / 100


# ------------------------------------------------------------
# 1. PARSING
# ------------------------------------------------------------

def parse_export(text):
    """Split an export into (answer_lines, result_lines)."""
    lines = text.splitlines()
    header = ",".join(ANSWER_HEADER)

    header_idx = next((i for i, l in enumerate(lines) if l.strip().startswith(header)), None)
    if header_idx is None:
        raise ValueError("answers header not found")

    results_idx = next(
        (i for i, l in enumerate(lines) if l.strip().startswith("results:")), None
    )
    answer_end = results_idx if results_idx is not None else len(lines)

    answer_lines = [l.strip() for l in lines[header_idx + 1:answer_end] if l.strip()]
    result_lines = []
    if results_idx is not None:
        result_lines = [
            l.strip() for l in lines[results_idx + 1:]
            if l.strip() and not l.startswith("results:")
        ]
    return answer_lines, result_lines


# ------------------------------------------------------------
# 2. STATISTICS
# ------------------------------------------------------------

def suggest_weight(info):
    """info 0.5 -> 1.0, info 1.0 -> 1.3, info 0 -> 0.7 (then clamped)."""
    raw = 1 + (info - 0.5) * 0.6
    return max(SUGGESTED_MIN, min(SUGGESTED_MAX, _round2(raw)))


def analyze_answers(answer_lines, min_n=MIN_N):
    per_question = {}

    for line in answer_lines:
        fields = line.split(",")
        if len(fields) < len(ANSWER_HEADER):
            continue
        _, qid, axis, version, weight, pick = fields[:6]
        qid = int(_to_num(qid))

        stats = per_question.setdefault(qid, {
            "id": qid,
            "axis": axis,
            "version": int(_to_num(version)) or 1,
            "n": 0, "a": 0, "b": 0, "w_sum": 0.0,
        })
        stats["n"] += 1
        stats["w_sum"] += _to_num(weight) or 1.0
        if pick == "A":
            stats["a"] += 1
        elif pick == "B":
            stats["b"] += 1

    for stats in per_question.values():
        p_a = stats["a"] / stats["n"] if stats["n"] else 0.0
        info = 4 * p_a * (1 - p_a)

        stats["pA"] = round(p_a, 3)
        stats["info"] = round(info, 3)
        stats["skew"] = round(abs(0.5 - p_a) * 2, 3)
        stats["weight_avg"] = round(stats["w_sum"] / max(1, stats["n"]), 2)
        stats["weight_suggested"] = suggest_weight(info) if stats["n"] >= min_n else None

    # Most informative first, then by sample size.
    return sorted(per_question.values(), key=lambda s: (-s["info"], -s["n"]))


def analyze_results(result_lines):
    confs = []
    for line in result_lines:
        fields = line.split(",")
        confs.append(_to_num(fields[3]) if len(fields) > 3 else 0.0)

    n = len(confs)
    return {"n": n, "avgConf": round(sum(confs) / n, 3) if n else 0.0}


def build_suggestions(answer_stats):
    return [
        {"id": s["id"], "axis": s["axis"], "version": s["version"], "suggested": s["weight_suggested"]}
        for s in answer_stats
        if s["weight_suggested"] is not None
    ]


def write_suggestions(path, results, suggestions):
    payload = {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "results": results,
        "suggestions": suggestions,
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    logger.info("Saved %d suggestion(s) to %s", len(suggestions), path)


# ------------------------------------------------------------
# 3. APPLYING SUGGESTIONS
# ------------------------------------------------------------

def apply_suggestions(suggestions, questions):
    """
    Sets question-level weights in place from `suggestions`.

    Option-level weights win at scoring time and are left untouched.
    A suggestion whose axis or version disagrees with the question is
    skipped. Returns the number of questions updated.
    """
    by_id = {int(_to_num(s.get("id"))): s for s in suggestions}
    updated = 0

    for q in questions:
        s = by_id.get(q.get("id"))
        if s is None:
            continue
        if s.get("axis") and q.get("axis") and s["axis"] != q["axis"]:
            continue
        if s.get("version") and q.get("version") and int(s["version"]) != int(q["version"]):
            continue

        value = _to_num(s.get("suggested"), default=None)
        if value is None:
            continue

        q["weight"] = max(APPLIED_MIN, min(APPLIED_MAX, _round2(value)))
        updated += 1

    return updated


def apply_suggestions_file(suggestions_path, questions_path=QUESTIONS_PATH):
    """
    Applies a suggestions file to the question file.

    The original question file is copied to
    <name>.backup.<epoch_ms>.json first. Returns (updated, backup_path).
    """
    with open(suggestions_path, "r", encoding="utf-8") as f:
        suggestions = json.load(f).get("suggestions") or []
    if not suggestions:
        raise ValueError(f"No suggestions to apply in {suggestions_path}")

    with open(questions_path, "r", encoding="utf-8") as f:
        questions = json.load(f)

    base, _ = os.path.splitext(questions_path)
    backup_path = f"{base}.backup.{int(time.time() * 1000)}.json"
    shutil.copyfile(questions_path, backup_path)

    updated = apply_suggestions(suggestions, questions)

    with open(questions_path, "w", encoding="utf-8") as f:
        json.dump(questions, f, indent=2, ensure_ascii=False)
        f.write("\n")

    logger.info("Applied %d suggestion(s); backup saved to %s", updated, backup_path)
    return updated, backup_path


# ------------------------------------------------------------
# 4. COMMAND LINE
# ------------------------------------------------------------

def _print_summary(results, stats, min_n, limit=20):
    print("Overall results:", results)
    print(f"minN for suggestions: {min_n}")
    print(f"\nPer-question summary (top {limit} by info):")
    print("id\taxis\tver\tn\tpA\tinfo\tskew\tweight(avg->suggest)")
    for s in stats[:limit]:
        suggested = s["weight_suggested"] if s["weight_suggested"] is not None else "-"
        print(
            f"{s['id']}\t{s['axis']}\t{s['version']}\t{s['n']}\t{s['pA']}\t"
            f"{s['info']}\t{s['skew']}\t{s['weight_avg']}->{suggested}"
        )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Persona quiz log analysis")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="summarise an exported log and suggest weights")
    analyze.add_argument("export", help="CSV written by data_logger.export_logs")
    analyze.add_argument("--min-n", type=int, default=MIN_N)
    analyze.add_argument("--out", default="weight_suggestions.json")

    apply = sub.add_parser("apply", help="write suggested weights into the question file")
    apply.add_argument("suggestions", nargs="?", default="weight_suggestions.json")
    apply.add_argument("questions", nargs="?", default=QUESTIONS_PATH)

    args = parser.parse_args(argv)
    configure_logging()

    if args.command == "analyze":
        with open(args.export, "r", encoding="utf-8") as f:
            answer_lines, result_lines = parse_export(f.read())
        stats = analyze_answers(answer_lines, args.min_n)
        results = analyze_results(result_lines)
        _print_summary(results, stats, args.min_n)
        write_suggestions(args.out, results, build_suggestions(stats))
        return 0

    for path in (args.suggestions, args.questions):
        if not os.path.exists(path):
            logger.error("File not found: %s", path)
            return 1
    try:
        updated, backup = apply_suggestions_file(args.suggestions, args.questions)
    except ValueError as e:
        logger.error("%s", e)
        return 1
    print(f"Applied {updated} suggestion(s). Backup saved to: {backup}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

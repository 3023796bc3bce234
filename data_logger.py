import csv
import logging
import os
import time

from config import ANSWER_LOG_PATH, RESULT_LOG_PATH
from persona_engine import AXES

logger = logging.getLogger(__name__)

ANSWER_HEADER = ["ts", "id", "axis", "version", "weight", "pick"]
RESULT_HEADER = ["ts", "primary", "secondary", "conf"] + list(AXES)

# Marker line that separates the two sections of an export.
RESULTS_MARKER = "results: ts,primary,secondary,conf"


def _now_ms():
    return int(time.time() * 1000)


def ensure_csv_exists(path, header):
    """
    Creates the CSV (and its folder) with headers if it does not exist.
    """
    folder = os.path.dirname(path)
    if folder and not os.path.exists(folder):
        os.makedirs(folder)

    if not os.path.isfile(path):
        with open(path, "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(header)
        logger.info("Created log file %s", path)


def log_answer(question_id, axis, version, weight, pick, path=ANSWER_LOG_PATH):
    """
    Logs a single answered question.

    Parameters:
        question_id : int
        axis : axis the question probes
        version : question version (1 if the question has none)
        weight : effective weight used for scoring
        pick : "A" or "B"
    """

    ensure_csv_exists(path, ANSWER_HEADER)

    with open(path, "a", newline="", encoding="utf-8") as f:
        csv.writer(f).writerow([_now_ms(), question_id, axis, version, weight, pick])


def log_result(primary, secondary, conf, scores, path=RESULT_LOG_PATH):
    """
    Logs a completed quiz.

    Parameters:
        primary : persona code
        secondary : persona code (may be empty)
        conf : confidence in [0, 1]
        scores : dict of raw per-axis sums
    """

    ensure_csv_exists(path, RESULT_HEADER)

    with open(path, "a", newline="", encoding="utf-8") as f:
        csv.writer(f).writerow(
            [_now_ms(), primary, secondary or "", round(conf, 4)]
            + [scores.get(axis, 0) for axis in AXES]
        )


def _read_rows(path):
    if not os.path.isfile(path):
        return []
    with open(path, "r", newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def read_answer_logs(path=ANSWER_LOG_PATH):
    return [
        {
            "ts": int(row["ts"]),
            "id": int(row["id"]),
            "axis": row["axis"],
            "version": int(row["version"] or 1),
            "weight": float(row["weight"] or 1),
            "pick": row["pick"],
        }
        for row in _read_rows(path)
    ]


def read_result_logs(path=RESULT_LOG_PATH):
    return [
        {
            "ts": int(row["ts"]),
            "primary": row["primary"],
            "secondary": row["secondary"],
            "conf": float(row["conf"] or 0),
        }
        for row in _read_rows(path)
    ]


def export_logs(out_path, answers_path=ANSWER_LOG_PATH, results_path=RESULT_LOG_PATH):
    """
    Writes both logs into one file for log_analysis:

        ts,id,axis,version,weight,pick
        <answer rows>
        results: ts,primary,secondary,conf
        <result rows>

    Returns (answer_count, result_count).
    """

    answers = read_answer_logs(answers_path)
    results = read_result_logs(results_path)

    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(ANSWER_HEADER)
        for a in answers:
            writer.writerow([a[k] for k in ANSWER_HEADER])
        f.write(RESULTS_MARKER + "\n")
        for r in results:
            writer.writerow([r["ts"], r["primary"], r["secondary"], r["conf"]])

    logger.info("Exported %d answers and %d results to %s", len(answers), len(results), out_path)
    return len(answers), len(results)

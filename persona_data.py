"""Load and check the quiz content: question set and archetype table."""

import json
import logging
from numbers import Number
from types import MappingProxyType

from persona_engine import AXES

logger = logging.getLogger(__name__)

OPTION_KEYS = ("A", "B")

# Older exports wrote option keys as "1" / "2".
LEGACY_KEYS = {"1": "A", "2": "B"}


class ContentError(Exception):
    """Raised when a content file cannot be used at all."""


def _read_json(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ContentError(f"Content file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def normalize_option_keys(question):
    options = [
        {**option, "key": LEGACY_KEYS.get(str(option.get("key")), option.get("key"))}
        for option in question.get("options", [])
    ]
    return {**question, "options": options}


def load_questions(path):
    """
    Read the question list and return it as a tuple of question dicts
    with option keys normalised to "A" / "B".
    """
    raw = _read_json(path)
    if not isinstance(raw, list):
        raise ContentError(f"{path}: expected a list of questions")

    questions = tuple(normalize_option_keys(q) for q in raw)

    problems = validate_questions(questions)
    for problem in problems:
        logger.warning("%s: %s", path, problem)

    logger.info("Loaded %d questions from %s", len(questions), path)
    return questions


def load_archetypes(path):
    """
    Read the versioned archetype table.

    File shape:
        {"version": 1, "archetypes": {"T1": {"name", "summary", "centroid"}, ...}}

    Returns a read-only mapping in file order; centroids become tuples.
    """
    raw = _read_json(path)
    table = raw.get("archetypes") if isinstance(raw, dict) else None
    if not isinstance(table, dict) or not table:
        raise ContentError(f"{path}: no archetypes defined")

    axes = raw.get("axes")
    if axes is not None and (not isinstance(axes, list) or tuple(axes) != AXES):
        raise ContentError(f"{path}: axes {axes} do not match {list(AXES)}")

    archetypes = {}
    for code, data in table.items():
        if not isinstance(data, dict):
            raise ContentError(f"{path}: archetype {code} must be an object")
        centroid = data.get("centroid")
        if not isinstance(centroid, list) or len(centroid) != len(AXES):
            raise ContentError(
                f"{path}: archetype {code} needs a {len(AXES)}-value centroid"
            )
        try:
            values = tuple(float(v) for v in centroid)
        except (TypeError, ValueError) as e:
            raise ContentError(f"{path}: archetype {code} centroid is not numeric") from e

        archetypes[code] = MappingProxyType({
            "code": code,
            "name": data.get("name", code),
            "summary": data.get("summary", ""),
            "centroid": values,
        })

    if len(archetypes) < 2:
        logger.warning("%s: only one archetype, no secondary match possible", path)

    logger.info(
        "Loaded %d archetypes (table v%s) from %s",
        len(archetypes), raw.get("version", "?"), path,
    )
    return MappingProxyType(archetypes)


def archetype_table_version(path):
    raw = _read_json(path)
    return raw.get("version") if isinstance(raw, dict) else None


def persona_by_code(archetypes, code):
    return archetypes.get(code)


def _is_number(value):
    return isinstance(value, Number) and not isinstance(value, bool)


def validate_questions(questions, axes=AXES):
    """
    Schema check for a question set.

    Returns a list of problems; an empty list means the set is safe to
    score. Never raises, so callers can decide how loud to be.
    """
    problems = []
    seen = set()

    for index, q in enumerate(questions):
        qid = q.get("id")
        label = f"question #{index} (id={qid})"

        if not isinstance(qid, int) or isinstance(qid, bool):
            problems.append(f"{label}: id must be an integer")
        elif qid in seen:
            problems.append(f"{label}: duplicate id")
        seen.add(qid)

        if q.get("axis") not in axes:
            problems.append(f"{label}: unknown axis {q.get('axis')!r}")

        if "weight" in q and not _is_number(q["weight"]):
            problems.append(f"{label}: weight must be a number")

        options = q.get("options", [])
        if len(options) != 2:
            problems.append(f"{label}: expected 2 options, got {len(options)}")

        keys = [o.get("key") for o in options]
        if len(keys) == 2 and sorted(map(str, keys)) != list(OPTION_KEYS):
            problems.append(f"{label}: option keys must be A and B, got {keys}")

        for option in options:
            if "weight" in option and not _is_number(option["weight"]):
                problems.append(f"{label}: option {option.get('key')} weight must be a number")
            for axis, value in option.get("score", {}).items():
                if axis not in axes:
                    problems.append(f"{label}: option {option.get('key')} scores unknown axis {axis!r}")
                elif not _is_number(value):
                    problems.append(f"{label}: option {option.get('key')} score for {axis} is not a number")

    return problems

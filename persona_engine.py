# ============================================================
# PERSONA ENGINE — COSINE CENTROID VERSION
# ============================================================
# Turns a set of A/B answers into a persona classification:
#
# - Each answer adds signed, weighted points to four trait axes.
# - The axis totals are squashed into a [-1, +1] trait vector.
# - Each archetype is a centroid in the same 4D space; the one
#   pointing most in your direction (cosine similarity) is your type.
# - Confidence blends how clear that win was with how many
#   questions you actually answered.
#
# Public API:
#   - aggregate_with_counts(answers, questions) -> AxisTotals
#   - normalize(axis_sums, max_abs) / normalize_by_counts(sums, counts)
#   - pick_persona(vector, archetypes) -> {"primary", "secondary", "ranked"}
#   - confidence(primary, secondary, answered, total) -> float
#   - score_answers(answers, questions, archetypes) -> PersonaResult
#
# Nothing here does I/O or keeps state between calls.
# ============================================================

import math
from typing import NamedTuple

AXES = ("behavior", "decision", "relation", "value")

# Confidence blend: decisiveness first, completion second.
GAP_WEIGHT = 0.7
COVERAGE_WEIGHT = 0.3

NORMALIZATION_METHODS = ("counts", "fixed")


class AxisTotals(NamedTuple):
    sums: dict
    counts: dict
    answered: int
    total: int


class PersonaResult(NamedTuple):
    sums: dict
    counts: dict
    answered: int
    total: int
    vector: tuple
    ranked: list
    primary: tuple
    secondary: tuple
    confidence: float
    method: str


def clamp(n, low=-1.0, high=1.0):
    return min(high, max(low, n))


# ------------------------------------------------------------
# 1. ANSWER AGGREGATION
# ------------------------------------------------------------

def effective_weight(question, option):
    """
    Weight used for one selected option.

    Lookup order: the option's own weight, then the question's
    weight, then 1.
    """
    for source in (option, question):
        weight = source.get("weight")
        if weight is not None:
            return float(weight)
    return 1.0


def _selected_option(question, answers):
    key = answers.get(question["id"])
    if not key:
        return None

    for option in question.get("options", ()):
        if option.get("key") == key:
            return option

    # Key that matches neither option: treat as unanswered.
    return None


def aggregate(answers, questions, axes=AXES):
    """
    Plain per-axis sum of the chosen options' raw scores.

    Weights are ignored here; this is the input for the fixed-divisor
    normalisation used by older result views.
    """
    totals = {axis: 0.0 for axis in axes}

    for question in questions:
        chosen = _selected_option(question, answers)
        if chosen is None:
            continue

        for axis, value in chosen.get("score", {}).items():
            if axis in totals:
                totals[axis] += value

    return totals


def aggregate_with_counts(answers, questions, axes=AXES):
    """
    Weighted per-axis sums plus per-axis answer counts.

    `answers` maps question id -> "A" / "B". A question that is missing
    from it (skipped or not reached yet) contributes nothing at all.

    Returns AxisTotals(sums, counts, answered, total) where
    counts[axis] is the summed weight of answers that moved that axis.
    """
    sums = {axis: 0.0 for axis in axes}
    counts = {axis: 0.0 for axis in axes}
    answered = 0

    for question in questions:
        chosen = _selected_option(question, answers)
        if chosen is None:
            continue

        answered += 1
        weight = effective_weight(question, chosen)

        for axis, value in chosen.get("score", {}).items():
            if axis not in sums:
                continue
            sums[axis] += value * weight
            if abs(value) > 0:
                counts[axis] += weight

    return AxisTotals(sums, counts, answered, len(questions))


# ------------------------------------------------------------
# 2. NORMALISATION (BOTH STRATEGIES ARE LIVE)
# ------------------------------------------------------------

def max_abs_per_axis(questions, axes=AXES):
    """
    Largest weighted magnitude any single axis can reach.

    For each axis we add up, question by question, the biggest
    |score| * weight either option could give it, and keep the
    largest axis total. Falls back to 1 for a set that scores nothing.
    """
    reach = {axis: 0.0 for axis in axes}

    for question in questions:
        best = {axis: 0.0 for axis in axes}
        for option in question.get("options", ()):
            weight = effective_weight(question, option)
            for axis, value in option.get("score", {}).items():
                if axis in best:
                    best[axis] = max(best[axis], abs(value) * weight)
        for axis in axes:
            reach[axis] += best[axis]

    return max(reach.values(), default=0.0) or 1.0


def normalize(axis_sums, max_abs, axes=AXES):
    """
    Fixed-divisor normalisation: sum / max_abs, clamped to [-1, +1].
    A divisor that is not positive is treated as 1.
    """
    divisor = max_abs if max_abs > 0 else 1.0
    return tuple(clamp(axis_sums[axis] / divisor) for axis in axes)


def normalize_by_counts(sums, counts, axes=AXES):
    """
    Coverage-adjusted normalisation: each axis is divided by its own
    weighted answer count. An axis nobody answered ends up at 0.
    """
    def safe(n):
        return 1.0 if n == 0 else n

    return tuple(clamp(sums[axis] / safe(counts[axis])) for axis in axes)


# ------------------------------------------------------------
# 3. ARCHETYPE MATCHING
# ------------------------------------------------------------

def _dot(a, b):
    return sum(x * y for x, y in zip(a, b))


def _magnitude(a):
    return math.sqrt(sum(x * x for x in a))


def cosine_similarity(a, b):
    m = _magnitude(a) * _magnitude(b)
    return 0.0 if m == 0 else _dot(a, b) / m


def rank_archetypes(vector, archetypes):
    """
    Score every archetype centroid against `vector`.

    Returns [(code, similarity), ...] best first. sorted() is stable,
    so equal scores keep the table's own order.
    """
    candidates = [
        (code, cosine_similarity(vector, data["centroid"]))
        for code, data in archetypes.items()
    ]
    return sorted(candidates, key=lambda c: c[1], reverse=True)


def pick_persona(vector, archetypes):
    """
    PUBLIC API — CHOOSE BEST-MATCHING ARCHETYPE

    `archetypes` must not be empty. Returns a dict with:
        primary:   (code, score)
        secondary: (code, score), or None for a one-entry table
        ranked:    full ranking
    """
    ranked = rank_archetypes(vector, archetypes)
    secondary = ranked[1] if len(ranked) > 1 else None
    return {"primary": ranked[0], "secondary": secondary, "ranked": ranked}


# ------------------------------------------------------------
# 4. CONFIDENCE
# ------------------------------------------------------------

def confidence(primary_score, secondary_score, answered, total):
    gap = max(0.0, primary_score - secondary_score)
    coverage = min(1.0, answered / max(1, total))
    return max(0.0, min(1.0, gap * GAP_WEIGHT + coverage * COVERAGE_WEIGHT))


# ------------------------------------------------------------
# 5. FULL PIPELINE
# ------------------------------------------------------------

def score_answers(answers, questions, archetypes, method="counts", axes=AXES):
    """
    Aggregate -> normalise -> match -> confidence in one call.

    method="counts" divides each axis by its own answer count;
    method="fixed" divides every axis by max_abs_per_axis(questions).
    """
    if method not in NORMALIZATION_METHODS:
        raise ValueError(
            f"Unknown normalisation method {method!r}; "
            f"expected one of {NORMALIZATION_METHODS}"
        )

    totals = aggregate_with_counts(answers, questions, axes=axes)

    if method == "counts":
        vector = normalize_by_counts(totals.sums, totals.counts, axes=axes)
    else:
        vector = normalize(totals.sums, max_abs_per_axis(questions, axes=axes), axes=axes)

    match = pick_persona(vector, archetypes)
    primary = match["primary"]
    secondary = match["secondary"]

    # A one-archetype table has no runner-up; the gap is then measured
    # against a score equal to the primary's own.
    runner_up_score = secondary[1] if secondary else primary[1]
    conf = confidence(primary[1], runner_up_score, totals.answered, totals.total)

    return PersonaResult(
        sums=totals.sums,
        counts=totals.counts,
        answered=totals.answered,
        total=totals.total,
        vector=vector,
        ranked=match["ranked"],
        primary=primary,
        secondary=secondary,
        confidence=conf,
        method=method,
    )

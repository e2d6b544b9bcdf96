# WORKFLOW: Merge duplicate candidates by code_10 using a quality score.
# Used by: Extraction pipeline after validation, clean-table export (score column)
# Functions:
# 1. score_candidate() - Completeness/confidence score of one candidate
# 2. deduplicate_candidates() - One candidate per code_10, highest score wins
#
# Dedup flow: Valid candidates (overlapping chunks, repeated passes) -> Group by code_10 -> Keep best
# Ties keep the first-seen candidate; output order follows first appearance of each code.

from typing import Dict, Iterable

from api.schemas.response import ExtractedCodeCandidate

BASE_SCORE = 10.0
CODE_14_BONUS = 3.0
UNIT_BONUS = 2.0
DUTY_RATE_BONUS = 2.0
NOTES_BONUS = 1.0
LABEL_BONUS_THRESHOLDS = (20, 50)
CONFIDENCE_WEIGHT = 3.0


def score_candidate(candidate: ExtractedCodeCandidate) -> float:
    """Score a candidate by completeness and reported confidence."""
    score = BASE_SCORE

    if candidate.code_14:
        score += CODE_14_BONUS
    if candidate.unit:
        score += UNIT_BONUS
    if candidate.droit is not None:
        score += DUTY_RATE_BONUS
    if candidate.notes:
        score += NOTES_BONUS

    for threshold in LABEL_BONUS_THRESHOLDS:
        if len(candidate.label_fr) > threshold:
            score += 1.0

    if candidate.extraction_confidence:
        score += candidate.extraction_confidence * CONFIDENCE_WEIGHT

    return score


def deduplicate_candidates(candidates: Iterable[ExtractedCodeCandidate]) -> Dict[str, ExtractedCodeCandidate]:
    """
    Keep the best candidate for each code_10.

    Args:
        candidates: Valid candidates, possibly with duplicates

    Returns:
        Mapping code_10 -> retained candidate, in first-seen order
    """
    best: Dict[str, ExtractedCodeCandidate] = {}
    best_scores: Dict[str, float] = {}

    for candidate in candidates:
        score = score_candidate(candidate)
        existing_score = best_scores.get(candidate.code_10)
        if existing_score is None or score > existing_score:
            best[candidate.code_10] = candidate
            best_scores[candidate.code_10] = score

    return best

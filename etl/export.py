# WORKFLOW: Export deduplicated tariff codes as a clean table.
# Used by: Extraction endpoints (?output=csv), downstream spreadsheet consumers
# Functions:
# 1. codes_to_dataframe() - One row per code, sorted by code_10
# 2. codes_to_csv() - CSV rendering of the same table
#
# Export flow: unique_hs_codes -> DataFrame (display code, chapter, score) -> CSV

from typing import Sequence

import pandas as pd

from api.schemas.response import ExtractedCodeCandidate
from etl.deduplicator import score_candidate
from etl.normalizer import format_hs_code

EXPORT_COLUMNS = [
    "code_10",
    "code_14",
    "hs_code_display",
    "chapter",
    "subheading",
    "label_fr",
    "unit",
    "droit",
    "notes",
    "page_number",
    "extraction_confidence",
    "score",
    "warnings",
]


def codes_to_dataframe(codes: Sequence[ExtractedCodeCandidate]) -> pd.DataFrame:
    """
    Build the clean code table.

    Args:
        codes: Deduplicated candidates

    Returns:
        DataFrame with EXPORT_COLUMNS, sorted by code_10
    """
    rows = []
    for code in codes:
        rows.append({
            "code_10": code.code_10,
            "code_14": code.code_14,
            "hs_code_display": format_hs_code(code.code_14 or code.code_10),
            "chapter": code.code_10[:2],
            "subheading": code.code_10[:6],
            "label_fr": code.label_fr,
            "unit": code.unit,
            "droit": code.droit,
            "notes": code.notes,
            "page_number": code.page_number,
            "extraction_confidence": code.extraction_confidence,
            "score": round(score_candidate(code), 2),
            "warnings": "; ".join(code.warnings),
        })

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    if df.empty:
        return df
    return df.sort_values("code_10", kind="stable").reset_index(drop=True)


def codes_to_csv(codes: Sequence[ExtractedCodeCandidate]) -> str:
    """Render the clean code table as CSV text."""
    return codes_to_dataframe(codes).to_csv(index=False)

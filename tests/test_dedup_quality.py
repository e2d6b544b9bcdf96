# WORKFLOW: Tests for deduplication scoring, quality metrics and the clean-table export.
# Used by: CI/CD pipelines, development testing
# Test scenarios:
# 1. Completeness/confidence score
# 2. Highest score wins per code_10, ties keep the first candidate
# 3. Accuracy profiles for encoded documents and page images
# 4. DataFrame/CSV export sorted by code_10

from api.schemas.response import ExtractedCodeCandidate
from etl.deduplicator import deduplicate_candidates, score_candidate
from etl.export import EXPORT_COLUMNS, codes_to_csv, codes_to_dataframe
from etl.quality import ExtractionSource, assess_quality


def candidate(**fields) -> ExtractedCodeCandidate:
    values = {"code_10": "0303140000", "label_fr": "Truites"}
    values.update(fields)
    return ExtractedCodeCandidate(**values)


def test_score_of_minimal_candidate():
    assert score_candidate(candidate()) == 10.0


def test_score_of_complete_candidate():
    complete = candidate(
        code_14="03031400001200",
        unit="kg",
        droit=0.0,
        notes="(a)",
        label_fr="– – Truites (Salmo trutta, Oncorhynchus mykiss, Oncorhynchus clarki)",
        extraction_confidence=0.5,
    )
    assert score_candidate(complete) == 10.0 + 3 + 2 + 2 + 1 + 2 + 1.5


def test_best_candidate_wins_in_first_seen_order():
    sparse = candidate()
    other = candidate(code_10="0303190000", label_fr="Autres")
    rich = candidate(unit="kg", droit=10.0)

    unique = deduplicate_candidates([sparse, other, rich])

    assert list(unique.keys()) == ["0303140000", "0303190000"]
    assert unique["0303140000"] is rich


def test_ties_keep_first_candidate():
    first = candidate(label_fr="Truites A")
    second = candidate(label_fr="Truites B")

    unique = deduplicate_candidates([first, second])

    assert unique["0303140000"] is first


def test_deduplicate_empty():
    assert deduplicate_candidates([]) == {}


def test_quality_for_partial_document():
    quality = assess_quality(ExtractionSource.ENCODED_DOCUMENT, pages_total=3, pages_successful=2, unique_codes=1)

    assert quality.estimated_accuracy == 0.8
    assert quality.codes_per_page == 0.5
    assert quality.coverage_percent == 67


def test_quality_is_capped_per_source():
    document = assess_quality(ExtractionSource.ENCODED_DOCUMENT, pages_total=2, pages_successful=2, unique_codes=20)
    images = assess_quality(ExtractionSource.PAGE_IMAGES, pages_total=4, pages_successful=4, unique_codes=24)

    assert document.estimated_accuracy == 0.95
    assert images.estimated_accuracy == 0.98
    assert images.codes_per_page == 6.0
    assert images.coverage_percent == 100


def test_quality_without_pages_is_zero():
    quality = assess_quality(ExtractionSource.PAGE_IMAGES, pages_total=0, pages_successful=0, unique_codes=0)

    assert quality.estimated_accuracy == 0.0
    assert quality.codes_per_page == 0.0
    assert quality.coverage_percent == 0


def test_quality_when_every_page_failed():
    quality = assess_quality(ExtractionSource.PAGE_IMAGES, pages_total=2, pages_successful=0, unique_codes=0)

    assert quality.estimated_accuracy == 0.75
    assert quality.codes_per_page == 0.0
    assert quality.coverage_percent == 0


def test_export_dataframe_is_sorted_with_display_columns():
    df = codes_to_dataframe([
        candidate(code_10="0303190000", label_fr="Autres", warnings=["Non-standard unit: boxes"]),
        candidate(code_14="03031400001200", unit="kg", droit=10.0),
    ])

    assert list(df.columns) == EXPORT_COLUMNS
    assert list(df["code_10"]) == ["0303140000", "0303190000"]
    assert df.loc[0, "hs_code_display"] == "0303.14.00.00.1200"
    assert df.loc[0, "chapter"] == "03"
    assert df.loc[0, "subheading"] == "030314"
    assert df.loc[1, "warnings"] == "Non-standard unit: boxes"


def test_export_empty_table_keeps_header():
    df = codes_to_dataframe([])
    assert df.empty
    assert list(df.columns) == EXPORT_COLUMNS
    assert codes_to_csv([]).startswith("code_10,code_14,hs_code_display")


def test_deduplication_keeps_highest_score_per_code():
    candidates = [
        candidate(code_10=f"03031{i % 3}0000", unit="kg" if i % 2 else None, droit=float(i) if i % 4 else None)
        for i in range(12)
    ]

    unique = deduplicate_candidates(candidates)

    assert len(unique) <= len(candidates)
    for code_10, kept in unique.items():
        same_key = [c for c in candidates if c.code_10 == code_10]
        assert all(score_candidate(kept) >= score_candidate(c) for c in same_key)

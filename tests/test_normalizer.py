# WORKFLOW: Tests for code normalization and duty rate parsing.
# Used by: CI/CD pipelines, development testing
# Test scenarios:
# 1. Full codes, padded short codes and 14-digit national codes
# 2. Sub-code reconstruction from parent codes
# 3. Duty rates: numbers, decimal commas, "-" markers, unknown values
# 4. Display formatting

import pytest

from api.schemas.validation import RawCodeCandidate
from etl.duty_parser import parse_duty_rate
from etl.normalizer import format_hs_code, normalize_candidate, resolve_code_digits, split_code_digits


def raw(**fields) -> RawCodeCandidate:
    fields.setdefault("label_fr", "– – Truites")
    return RawCodeCandidate(**fields)


def test_full_code_is_normalized():
    candidate = normalize_candidate(raw(code_raw="0303.14 00 00", unit=" kg ", droit="10"), page_number=2)

    assert candidate.code_10 == "0303140000"
    assert candidate.code_14 is None
    assert candidate.unit == "kg"
    assert candidate.droit == 10.0
    assert candidate.page_number == 2
    assert candidate.extraction_confidence is None


def test_short_code_is_padded():
    candidate = normalize_candidate(raw(code_raw="0302.74 00"))
    assert candidate.code_10 == "0302740000"


def test_subcode_inherits_parent_prefix():
    candidate = normalize_candidate(raw(code_raw="10", is_subcode=True, parent_code="0301.91"))
    assert candidate.code_10 == "0301911000"


def test_reconstructed_code_takes_precedence():
    candidate = normalize_candidate(raw(code_raw="15 00", code_10_reconstructed="0301.91.15.00"))
    assert candidate.code_10 == "0301911500"


def test_unrecoverable_short_code_is_dropped():
    assert normalize_candidate(raw(code_raw="12")) is None
    assert normalize_candidate(raw(code_raw="12", parent_code="03")) is None
    assert resolve_code_digits(raw(code_raw="(a)")) is None


@pytest.mark.parametrize("digits,expected", [
    ("030314", ("0303140000", None)),
    ("0303140000", ("0303140000", None)),
    ("030314000012", ("0303140000", "03031400001200")),
    ("0303140000123456", ("0303140000", "03031400001234")),
])
def test_split_code_digits(digits, expected):
    assert split_code_digits(digits) == expected


def test_confidence_is_clamped():
    assert normalize_candidate(raw(code_raw="0303140000", confidence=1.4)).extraction_confidence == 1.0
    assert normalize_candidate(raw(code_raw="0303140000", confidence=-0.2)).extraction_confidence == 0.0


def test_blank_optional_fields_become_none():
    candidate = normalize_candidate(raw(code_raw="0303140000", unit="  ", notes=""))
    assert candidate.unit is None
    assert candidate.notes is None


@pytest.mark.parametrize("value,expected", [
    (10, 10.0),
    (2.5, 2.5),
    ("10", 10.0),
    ("2,5 %", 2.5),
    ("17.5%", 17.5),
    ("-", None),
    ("n/a", None),
    ("", None),
    (None, None),
    (True, None),
    (float("nan"), None),
    ("10 DH/kg", None),
])
def test_parse_duty_rate(value, expected):
    assert parse_duty_rate(value) == expected


def test_format_hs_code():
    assert format_hs_code("0303140000") == "0303.14.00.00"
    assert format_hs_code("03031400001200") == "0303.14.00.00.1200"
    assert format_hs_code("030314") == "0303.14"


def test_every_length_yields_full_codes():
    for length in range(6, 21):
        digits = "".join(str((i % 9) + 1) for i in range(length))
        code_10, code_14 = split_code_digits(digits)

        assert len(code_10) == 10 and code_10.isdigit()
        if length >= 11:
            assert len(code_14) == 14
            assert code_14.startswith(code_10)
        else:
            assert code_14 is None

"""Tests for case text analysis."""

import pytest

from casedeck.slides import analyzer
from casedeck.slides.models import CaseProfile

from conftest import MURDER_CASE, PRIVACY_CASE, make_settings


def test_murder_case_profile():
    profile = analyzer.analyze(MURDER_CASE)

    assert profile.case_type == "criminal"
    assert profile.elements.has_evidence
    assert profile.elements.has_statutes
    assert profile.elements.has_facts
    assert "Section 302 IPC" in profile.detected_entities.sections
    assert profile.input_length == len(MURDER_CASE)


def test_privacy_case_profile():
    profile = analyzer.analyze(PRIVACY_CASE)

    assert profile.case_type == "constitutional"
    assert profile.elements.has_citations
    assert profile.elements.has_statutes
    assert any("Puttaswamy" in case for case in profile.detected_entities.cases)
    assert "(2017)" in profile.detected_entities.years


def test_informal_citation_counts_as_citation():
    text = "The landmark judgment was delivered by a constitution bench in this matter."
    assert analyzer.analyze(text).elements.has_citations


def test_analysis_is_deterministic():
    assert analyzer.analyze(MURDER_CASE) == analyzer.analyze(MURDER_CASE)


@pytest.mark.parametrize("text", [None, "", "   ", 42])
def test_empty_or_malformed_text_gives_empty_profile(text):
    profile = analyzer.analyze(text)

    assert isinstance(profile, CaseProfile)
    assert profile.case_type == "general"
    assert profile.completeness == 0
    assert profile.estimated_slide_count == 3
    assert profile.suggestions


def test_tied_keywords_fall_back_to_general():
    # One constitutional keyword, one civil keyword.
    assert analyzer.detect_case_type("the writ and the contract") == "general"


def test_short_input_is_penalised():
    elements = analyzer.analyze_elements(MURDER_CASE, analyzer.extract_entities(MURDER_CASE))
    long_score = analyzer.completeness_score(elements, 400)
    short_score = analyzer.completeness_score(elements, 100)
    assert long_score - short_score == 10


@pytest.mark.parametrize(
    "completeness,expected",
    [(0, 3), (39, 3), (40, 4), (69, 5), (70, 5), (89, 7), (90, 6), (100, 8)],
)
def test_estimated_slide_count_bands(completeness, expected):
    assert analyzer.estimate_slide_count(completeness) == expected


def test_profile_bounds_hold_for_varied_inputs():
    for text in (MURDER_CASE, PRIVACY_CASE, "x" * 10, MURDER_CASE * 10):
        profile = analyzer.analyze(text)
        assert 0 <= profile.completeness <= 100
        assert 3 <= profile.estimated_slide_count <= 8


def test_missing_statutes_suggestion_names_ipc_for_criminal_cases():
    profile = analyzer.analyze(
        "The accused was charged after the murder; the prosecution relied on a witness."
    )
    assert profile.case_type == "criminal"
    assert "Add specific IPC sections" in profile.suggestions


def test_parties_are_extracted():
    entities = analyzer.extract_entities("The petitioner Ravi Kumar filed a writ against the respondent State")
    assert "Ravi Kumar" in entities.parties


def test_validate_input_reports_length_errors():
    settings = make_settings()
    check = analyzer.validate_input("too short", settings)

    assert not check.valid
    assert check.errors == ["Input too short (minimum 50 characters)"]


def test_validate_input_accepts_detailed_case():
    check = analyzer.validate_input(MURDER_CASE, make_settings())

    assert check.valid
    assert check.errors == []
    assert check.profile.case_type == "criminal"


def test_validate_input_warns_without_legal_references():
    text = "My neighbour keeps parking his car across my gate every single morning now."
    check = analyzer.validate_input(text, make_settings())

    assert check.valid
    assert any("legal references" in warning for warning in check.warnings)

"""Tests for deck quality validation."""

import pytest

from casedeck.slides.models import SlideDeck, TextBlock
from casedeck.slides.validator import WEIGHTS, QualityValidator, deck_stats, round_half_up

from conftest import (
    MURDER_CASE,
    as_deck,
    criminal_deck_payload,
    good_deck_payload,
    load_templates,
    make_settings,
    weak_deck_payload,
)


@pytest.fixture(scope="module")
def validator():
    return QualityValidator(make_settings())


def _messages(report, kind=None, severity=None):
    return [
        issue.message
        for issue in report.issues
        if (kind is None or issue.type == kind)
        and (severity is None or issue.severity == severity)
    ]


def test_well_formed_deck_is_valid(validator):
    report = validator.validate(as_deck(good_deck_payload()))

    assert report.valid
    assert report.scores.structure == 100
    assert report.scores.legal_accuracy == 100
    assert report.scores.formatting == 100
    # No input text to compare against.
    assert report.scores.relevance == 80
    assert report.overall_score == 95


def test_overall_is_weighted_sum_of_sub_scores(validator):
    for payload in (good_deck_payload(), weak_deck_payload(), criminal_deck_payload()):
        report = validator.validate(as_deck(payload), input_text=MURDER_CASE)
        scores = report.scores
        expected = round_half_up(
            (
                scores.structure * WEIGHTS["structure"]
                + scores.legal_accuracy * WEIGHTS["legal_accuracy"]
                + scores.formatting * WEIGHTS["formatting"]
                + scores.relevance * WEIGHTS["relevance"]
            )
            / 100
        )
        assert report.overall_score == expected
        assert 0 <= report.overall_score <= 100


def test_weak_deck_scores_below_threshold(validator):
    report = validator.validate(as_deck(weak_deck_payload()), input_text=MURDER_CASE)

    assert not report.valid
    assert report.overall_score < 60
    assert report.scores.legal_accuracy == 20
    assert report.scores.structure == 25
    assert "Missing case overview slide" in _messages(report, "relevance")
    assert "Missing facts slide" in _messages(report, "relevance")


def test_empty_deck_is_invalid(validator):
    report = validator.validate(SlideDeck(slides=[]))

    assert not report.valid
    assert report.overall_score == 0
    assert _messages(report, severity="error") == ["Invalid slide deck: no slides"]


def test_unformatted_reference_costs_five_points(validator):
    deck = as_deck(good_deck_payload())
    deck.slides[0].blocks[0] = TextBlock.of(
        "Petitioner relies on Article 21 directly",
        "The court examines *natural justice* in the hearing",
    )
    report = validator.validate(deck)

    assert report.scores.formatting == 95
    assert 'Reference "Article 21" should be formatted in blue' in _messages(
        report, "formatting"
    )


@pytest.mark.parametrize(
    "point, reference",
    [
        ("Petitioner relies on *Article 21* directly", "Article 21"),
        ("The detention breached ~Section 50 CrPC~", "Section 50 CrPC"),
    ],
)
def test_reference_in_another_colour_costs_five_points(validator, point, reference):
    deck = as_deck(good_deck_payload())
    deck.slides[0].blocks[0] = TextBlock.of(point, "The court examines *natural justice* in the hearing")
    report = validator.validate(deck)

    assert report.scores.formatting <= 95
    assert f'Reference "{reference}" should be formatted in blue' in _messages(
        report, "formatting", "warning"
    )


def test_absurd_article_number_is_an_error(validator):
    deck = as_deck(good_deck_payload())
    deck.slides[0].blocks[0] = TextBlock.of(
        "Petitioner relies on _Article 500_",
        "The court examines *natural justice* in the hearing",
    )
    report = validator.validate(deck)

    assert report.scores.legal_accuracy == 80
    assert report.overall_score >= 60
    assert not report.valid
    assert _messages(report, "legal", "error") == ['Invalid article number: "Article 500"']


def test_ipc_section_beyond_code_is_an_error(validator):
    deck = as_deck(good_deck_payload())
    deck.slides[1].blocks[0] = TextBlock.of(
        "Charged under _Section 600 IPC_",
        "Police recovered the weapon from the scene",
    )
    report = validator.validate(deck)

    assert any("Section 600 IPC" in message for message in _messages(report, "legal", "error"))


def test_unformatted_doctrine_is_informational(validator):
    deck = as_deck(good_deck_payload())
    deck.slides[0].blocks[0] = TextBlock.of(
        "Petitioner challenges the order under _Article 21_",
        "The court examines natural justice in the hearing",
    )
    report = validator.validate(deck)

    assert 'Legal term "natural justice" should be formatted in gold' in _messages(
        report, "legal", "info"
    )
    assert report.scores.legal_accuracy < 100


def test_structure_deductions(validator):
    payload = good_deck_payload(3)
    payload["slides"][0]["blocks"][0]["data"]["points"] = ["Only one point"]
    report = validator.validate(as_deck(payload))

    assert report.scores.structure == 95
    assert any("Too few points" in message for message in _messages(report, "structure"))


def test_too_few_slides_is_an_error(validator):
    report = validator.validate(as_deck(good_deck_payload(2)))

    assert report.scores.structure == 70
    assert not report.valid


def test_block_variant_limits_are_warnings_without_deduction(validator):
    payload = good_deck_payload()
    payload["slides"][3]["blocks"] = [
        {"type": "timeline", "data": {"events": [{"date": "2017", "title": "Ruling"}]}},
    ]
    report = validator.validate(as_deck(payload))

    assert report.scores.structure == 100
    assert any("Timeline has 1 events" in message for message in _messages(report, "structure"))


def test_desired_count_mismatch_is_a_warning(validator):
    report = validator.validate(as_deck(good_deck_payload()), desired_slide_count=5)

    assert "Requested 5 slides but deck has 4" in _messages(report, "structure", "warning")
    assert report.valid


def test_template_compliance_is_informational():
    validator = QualityValidator(make_settings())
    template = load_templates().get("criminal_prosecution")

    compliant = validator.validate(as_deck(criminal_deck_payload()), template=template)
    assert not [m for m in _messages(compliant, "structure", "info") if "expects" in m]

    report = validator.validate(as_deck(good_deck_payload()), template=template)
    missing = _messages(report, "structure", "info")
    assert 'Template "criminal_prosecution" expects a "Evidence Presented" slide' in missing
    assert report.overall_score == validator.validate(as_deck(good_deck_payload())).overall_score


def test_case_citation_without_year_is_informational(validator):
    deck = as_deck(good_deck_payload())
    deck.slides[2].blocks[0] = TextBlock.of(
        "Whether the *burden of proof* was discharged",
        "Relied on *Maneka Gandhi v. Union of India*",
    )
    report = validator.validate(deck)

    assert any("missing year" in message for message in _messages(report, "citation", "info"))


def test_relevance_penalises_unrelated_slides(validator):
    report = validator.validate(
        as_deck(good_deck_payload()),
        input_text="Trademark infringement concerning sparkling beverages bottled overseas",
    )

    assert report.scores.relevance == 80
    assert "Slides may not be closely related to input description" in _messages(
        report, "relevance"
    )


def test_metrics_are_reported(validator):
    report = validator.validate(as_deck(criminal_deck_payload()))

    assert report.metrics.avg_blocks_per_slide == 1.0
    assert report.metrics.avg_points_per_block > 0
    assert report.metrics.citation_count == 2
    assert report.metrics.legal_term_density > 0


def test_deck_stats():
    stats = deck_stats(as_deck(criminal_deck_payload()))

    assert stats["totalSlides"] == 5
    assert stats["totalBlocks"] == 5
    assert stats["blockTypes"] == {"text": 2, "timeline": 1, "evidence": 1, "callout": 1}
    assert stats["avgBlocksPerSlide"] == 1.0
    assert stats["fromCache"] is False

"""
Test the trust signal detector

Covers review resolution (structured data, platforms, generic text), badges,
contact and legal signals, and the 0-100 trust score.
"""
import time

import pytest

from d3_assessment.detectors import TrustSignalDetector, analyze_trust_signals, calculate_trust_score
from d3_assessment.types import BadgeCategory, ReviewSourceType
from tests.fixtures.pages import BARE_PAGE, JSON_LD_PAGE, TRUST_PAGE

pytestmark = pytest.mark.unit


@pytest.fixture
def detector(pattern_registry):
    return TrustSignalDetector(pattern_registry)


def score(**overrides) -> int:
    facts = dict(
        has_reviews=False,
        average_rating=None,
        review_count=None,
        badge_count=0,
        has_phone=False,
        has_email=False,
        has_address=False,
        social_count=0,
        has_testimonials=False,
        has_privacy_policy=False,
        has_terms=False,
    )
    facts.update(overrides)
    return calculate_trust_score(**facts)


class TestCalculateTrustScore:
    def test_nothing_scores_zero(self):
        assert score() == 0

    def test_worked_example(self):
        """35 reviews + 10 badges + 20 contact + 6 social + 5 testimonials + 10 legal"""
        total = score(
            has_reviews=True,
            average_rating=4.8,
            review_count=127,
            badge_count=2,
            has_phone=True,
            has_email=True,
            has_address=True,
            social_count=2,
            has_testimonials=True,
            has_privacy_policy=True,
            has_terms=True,
        )
        assert total == 86

    def test_review_points(self):
        assert score(has_reviews=True) == 15
        assert score(has_reviews=True, average_rating=3.9, review_count=9) == 15
        assert score(has_reviews=True, average_rating=4.0, review_count=10) == 35

    def test_rating_ignored_without_reviews(self):
        assert score(average_rating=5.0, review_count=500) == 0

    def test_badges_and_social_are_capped(self):
        assert score(badge_count=10) == 20
        assert score(social_count=7) == 10

    def test_never_exceeds_100(self):
        total = score(
            has_reviews=True,
            average_rating=5.0,
            review_count=1000,
            badge_count=10,
            has_phone=True,
            has_email=True,
            has_address=True,
            social_count=10,
            has_testimonials=True,
            has_privacy_policy=True,
            has_terms=True,
        )
        assert total == 100


class TestReviewResolution:
    def test_structured_data_aggregate_rating(self, detector):
        """JSON-LD aggregateRating inside @graph wins over every other source"""
        reviews = detector.analyze_reviews(JSON_LD_PAGE)

        assert reviews.has_reviews is True
        assert reviews.source.name == "Schema.org Aggregate"
        assert reviews.source.type == ReviewSourceType.AGGREGATE
        assert reviews.source.is_verified is True
        assert reviews.review_count == 212
        assert reviews.average_rating == 4.9

    def test_structured_data_beats_platform(self, detector):
        html = JSON_LD_PAGE.replace("<p>Welcome</p>", "<p>Google Reviews 3.1 out of 5</p>")
        assert detector.analyze_reviews(html).source.type == ReviewSourceType.AGGREGATE

    def test_structured_data_list_and_numbers(self, detector):
        html = (
            '<script type="application/ld+json">[{"@type": "Hotel", '
            '"aggregateRating": {"ratingValue": 4.5, "reviewCount": 30}}]</script>'
        )
        reviews = detector.analyze_reviews(html)
        assert reviews.review_count == 30
        assert reviews.average_rating == 4.5

    def test_malformed_json_ld_is_skipped(self, detector):
        """Broken JSON-LD falls through to the pattern tables"""
        html = '<script type="application/ld+json">{"aggregateRating": </script><p>Trustpilot TrustScore 4.2</p>'
        reviews = detector.analyze_reviews(html)

        assert reviews.source.type == ReviewSourceType.TRUSTPILOT
        assert reviews.source.is_verified is False
        assert reviews.average_rating == 4.2

    def test_platform_reviews(self, detector):
        reviews = detector.analyze_reviews(TRUST_PAGE)

        assert reviews.source.name == "Google Reviews"
        assert reviews.source.type == ReviewSourceType.GOOGLE
        assert reviews.average_rating == 4.8
        assert reviews.review_count == 127

    def test_generic_reviews(self, detector):
        reviews = detector.analyze_reviews("<p>Rated 4.6/5 by 18 reviews</p>")

        assert reviews.source.name == "Site Reviews"
        assert reviews.source.type == ReviewSourceType.CUSTOM
        assert reviews.average_rating == 4.6
        assert reviews.review_count == 18

    def test_no_reviews(self, detector):
        reviews = detector.analyze_reviews(BARE_PAGE)
        assert reviews.has_reviews is False
        assert reviews.source is None


class TestTrustSignalDetector:
    def test_trust_page(self, detector):
        """Every signal on the sample page adds up to the worked example"""
        analysis = detector.detect(TRUST_PAGE)

        assert analysis.has_reviews is True
        assert [b.name for b in analysis.trust_badges] == ["Superhost", "VRMA Member"]
        assert analysis.has_industry_badges is True
        assert analysis.has_security_badges is False
        assert analysis.has_phone_number is True
        assert analysis.has_email_address is True
        assert analysis.has_physical_address is True
        assert analysis.detected_social_count == 2
        assert analysis.has_testimonials is True
        assert analysis.has_privacy_policy is True
        assert analysis.has_terms_of_service is True
        assert analysis.rating_out_of == 5
        assert analysis.overall_trust_score == 86
        assert any(r.startswith("Great 4.8 rating!") for r in analysis.recommendations)

    def test_social_profiles_report_every_platform(self, detector, pattern_registry):
        analysis = detector.detect(TRUST_PAGE)
        platforms = [p.platform for p in analysis.social_profiles]

        assert platforms == [p.platform for p in pattern_registry.social_platforms]
        detected = {p.platform for p in analysis.social_profiles if p.detected}
        assert detected == {"Facebook", "Instagram"}

    def test_json_ld_page_score(self, detector):
        assert detector.detect(JSON_LD_PAGE).overall_trust_score == 35

    def test_bare_page(self, detector):
        analysis = detector.detect(BARE_PAGE)

        assert analysis.overall_trust_score == 0
        assert analysis.has_reviews is False
        assert analysis.trust_badges == []
        assert "Add guest reviews to the site; most travelers read reviews before booking" in analysis.recommendations
        assert any("privacy policy" in r for r in analysis.recommendations)

    def test_payment_badges_only(self, detector):
        analysis = detector.detect("<p>Secure checkout with PayPal</p>")

        assert [b.category for b in analysis.trust_badges] == [BadgeCategory.PAYMENT]
        assert analysis.has_security_badges is False
        assert analysis.has_industry_badges is False

    def test_few_reviews_recommendation(self, detector):
        analysis = detector.detect("<p>Google Reviews: 4.2 stars from 6 reviews</p>")
        assert any(r.startswith("Only 6 reviews found") for r in analysis.recommendations)

    @pytest.mark.parametrize("html", [None, 3.14, ""])
    def test_non_string_input(self, detector, html):
        assert detector.detect(html).overall_trust_score == 0

    def test_module_helper(self, pattern_registry):
        assert analyze_trust_signals(TRUST_PAGE, pattern_registry).overall_trust_score == 86


class TestHostileInput:
    """Detection degrades to null facts instead of raising or stalling"""

    @pytest.mark.parametrize("count", ["1e999", "-1e999", "Infinity", "NaN", "1" + "0" * 400])
    def test_non_finite_structured_review_count(self, detector, count):
        html = (
            '<script type="application/ld+json">'
            f'{{"aggregateRating": {{"ratingValue": 4.8, "reviewCount": {count}}}}}</script>'
        )
        reviews = detector.analyze_reviews(html)

        assert reviews.source.type == ReviewSourceType.AGGREGATE
        assert reviews.review_count is None
        assert reviews.average_rating == 4.8

    @pytest.mark.parametrize("rating", ["1e999", "Infinity", "NaN", "1" + "0" * 400, '"1e999"'])
    def test_non_finite_structured_rating(self, detector, rating):
        html = (
            '<script type="application/ld+json">'
            f'{{"aggregateRating": {{"ratingValue": {rating}, "reviewCount": 12}}}}</script>'
        )
        reviews = detector.analyze_reviews(html)

        assert reviews.average_rating is None
        assert reviews.review_count == 12

    def test_oversized_json_number_is_skipped(self, detector):
        html = (
            '<script type="application/ld+json">'
            '{"aggregateRating": {"ratingValue": 4.8, "reviewCount": ' + "9" * 5000 + "}}</script>"
            "<p>Trustpilot TrustScore 4.2</p>"
        )
        assert detector.analyze_reviews(html).source.type == ReviewSourceType.TRUSTPILOT

    def test_deeply_nested_json_ld(self, detector):
        html = '<script type="application/ld+json">' + "[" * 5000 + "]" * 5000 + "</script>"
        assert detector.analyze_reviews(html).has_reviews is False

    def test_long_digit_run_count_is_dropped(self, detector):
        reviews = detector.analyze_reviews("<p>Google reviews: " + "9" * 5000 + " reviews</p>")

        assert reviews.source.type == ReviewSourceType.GOOGLE
        assert reviews.review_count is None

    @pytest.mark.parametrize(
        "html",
        [
            "<p>Google reviews " + "9" * 20000 + "</p>",
            "<p>Airbnb review superhost " + "9" * 20000 + "</p>",
            "<p>TripAdvisor " + "9" * 20000 + "</p>",
            "<p>review " + "9" * 20000 + "</p>",
            "<p>" + "a" * 20000 + "</p>",
        ],
    )
    def test_long_runs_detect_in_linear_time(self, detector, html):
        started = time.perf_counter()
        detector.detect(html)
        assert time.perf_counter() - started < 2.0

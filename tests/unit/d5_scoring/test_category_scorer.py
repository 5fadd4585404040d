"""
Test category scoring
"""
import pytest

from d3_assessment.types import ScoreCategory, Severity
from d5_scoring.category_scorer import penalty_score, score_categories, score_category
from tests.fixtures.audits import make_finding

pytestmark = pytest.mark.unit


class TestPenaltyScore:
    def test_no_findings_is_perfect(self):
        assert penalty_score([]) == 100

    def test_penalties_subtract(self):
        findings = [make_finding("seo.a", penalty=5), make_finding("seo.b", penalty=12)]
        assert penalty_score(findings) == 83

    def test_clamped_at_zero(self):
        findings = [make_finding("security.no-https", penalty=50), make_finding("security.x", penalty=70)]
        assert penalty_score(findings) == 0

    def test_counts_filter(self):
        findings = [make_finding("seo.a", penalty=5), make_finding("seo.b", penalty=12)]
        assert penalty_score(findings, counts=lambda f: f.id == "seo.b") == 88


class TestScoreCategory:
    def test_only_own_findings_count(self):
        findings = [
            make_finding("trust.no-terms", severity=Severity.MINOR, penalty=4),
            make_finding("trust.no-reviews", severity=Severity.BLOCKER, penalty=25),
            make_finding("seo.sitemap-missing", penalty=5),
        ]

        result = score_category(ScoreCategory.TRUST, findings)

        assert result.category == ScoreCategory.TRUST
        assert result.score == 71
        assert result.blocker_count == 1
        assert [f.id for f in result.findings] == ["trust.no-terms", "trust.no-reviews"]

    def test_category_by_value(self):
        assert score_category("content", []).category == ScoreCategory.CONTENT


class TestScoreCategories:
    def test_all_categories_present_in_order(self):
        """Categories without findings score exactly 100"""
        scores = score_categories([make_finding("performance.slow-mobile-lcp", penalty=20)])

        assert list(scores) == list(ScoreCategory)
        assert scores[ScoreCategory.PERFORMANCE].score == 80
        assert all(cs.score == 100 for category, cs in scores.items() if category != ScoreCategory.PERFORMANCE)

    def test_accepts_generator(self):
        scores = score_categories(make_finding(f"seo.f{i}", penalty=10) for i in range(3))
        assert scores[ScoreCategory.SEO].score == 70

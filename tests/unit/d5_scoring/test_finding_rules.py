"""
Test the finding rules over sample audits

Each rule reads only the signals it needs; a missing bundle makes a rule
abstain rather than fire.
"""
import pytest

from d3_assessment.types import Severity
from d5_scoring.rules import RULE_REGISTRY, evaluate_rules
from tests.fixtures.audits import AuditFactory

pytestmark = pytest.mark.unit

FULL_AUDIT_FINDINGS = [
    "content.no-video",
    "content.no-direct-booking-benefits",
    "conversion.inquiry-only-booking",
    "conversion.too-many-clicks",
    "conversion.booking-leaves-domain",
    "conversion.account-required",
    "conversion.fees-hidden",
    "conversion.no-sticky-mobile-cta",
    "performance.slow-mobile-lcp",
    "performance.layout-shift",
    "performance.main-thread-blocking",
    "performance.low-mobile-score",
    "performance.heavy-page",
    "performance.third-party-bloat",
    "security.no-hsts",
    "security.no-csp",
    "seo.sitemap-missing",
    "seo.duplicate-titles",
    "seo.missing-descriptions",
    "seo.no-review-schema",
    "trust.no-trust-badges",
    "trust.missing-address",
    "trust.no-testimonials",
    "trust.no-terms",
]


def fired(audit, rule_id):
    """The finding a single rule produces for an audit, or None"""
    return RULE_REGISTRY.get(rule_id).evaluate(audit)


class TestSampleAudits:
    def test_minimal_audit_has_no_findings(self, minimal_audit):
        """Nothing is known, so nothing fires"""
        assert evaluate_rules(minimal_audit) == []

    def test_full_audit_findings(self, full_audit):
        findings = evaluate_rules(full_audit)
        assert [f.id for f in findings] == FULL_AUDIT_FINDINGS

    def test_findings_are_deterministic(self, full_audit):
        assert evaluate_rules(full_audit) == evaluate_rules(AuditFactory.full())

    def test_every_finding_has_evidence(self, full_audit):
        assert all(f.evidence for f in evaluate_rules(full_audit))


class TestConversionRules:
    def test_no_booking_cta_from_detector(self):
        audit = AuditFactory.full(detected={"bookingFlow": {"hasBookingCTA": False, "estimatedClicksToBook": 10}})

        finding = fired(audit, "conversion.no-booking-cta")

        assert finding.severity == Severity.BLOCKER
        assert finding.evidence[1] == "Estimated clicks to book: 10"

    def test_no_booking_cta_from_crawl(self):
        audit = AuditFactory.minimal(crawl={"pages": [{"url": "https://q.test/", "kind": "home", "detectedCTAs": []}]})
        assert fired(audit, "conversion.no-booking-cta") is not None

    def test_unknown_ctas_abstain(self):
        audit = AuditFactory.minimal(crawl={"pages": [{"url": "https://q.test/", "kind": "home"}]})
        assert fired(audit, "conversion.no-booking-cta") is None

    def test_cta_below_fold(self):
        audit = AuditFactory.full(detected={"bookingFlow": {"ctaLocation": "below-fold"}})
        finding = fired(audit, "conversion.cta-below-fold")
        assert finding.evidence == ["Strongest booking CTA 'Book Now' appears below the fold"]

    def test_redirect_engine(self):
        audit = AuditFactory.full(
            detected={"bookingFlow": {"bookingEngine": {"name": "Airbnb Embed", "type": "redirect", "confidence": 0.9}}}
        )
        assert fired(audit, "conversion.redirect-booking-engine") is not None

    def test_no_booking_engine_defers_to_tech_stack(self):
        audit = AuditFactory.full(detected={"bookingFlow": {"bookingEngine": None}})
        assert fired(audit, "conversion.no-booking-engine") is None

        audit = AuditFactory.full(detected={"bookingFlow": {"bookingEngine": None}}, tech={"bookingEngine": None})
        assert fired(audit, "conversion.no-booking-engine") is not None

    def test_too_many_clicks_evidence(self, full_audit):
        finding = fired(full_audit, "conversion.too-many-clicks")
        assert finding.evidence == [
            "Estimated 6 clicks to book (friction score 30)",
            "Booking page is 4 clicks from the home page",
        ]

    def test_click_depth_at_limit(self):
        audit = AuditFactory.minimal(crawl={"bookingPath": {"clickDepthFromHome": 3}})
        assert fired(audit, "conversion.too-many-clicks") is None


class TestPerformanceRules:
    def test_lcp_poor_band_is_major(self, full_audit):
        finding = fired(full_audit, "performance.slow-mobile-lcp")

        assert finding.severity == Severity.MAJOR
        assert finding.penalty == 20
        assert finding.impact == 0.6
        assert finding.evidence == ["Mobile Largest Contentful Paint is 4.8s (target 2.5s)"]

    def test_lcp_needs_improvement_is_minor(self):
        audit = AuditFactory.full(perf={"byStrategy": {"mobile": {"metrics": {"lcpMs": 3000}}}})
        finding = fired(audit, "performance.slow-mobile-lcp")

        assert finding.severity == Severity.MINOR
        assert finding.penalty == 8

    def test_lcp_good(self):
        audit = AuditFactory.full(perf={"byStrategy": {"mobile": {"metrics": {"lcpMs": 2500}}}})
        assert fired(audit, "performance.slow-mobile-lcp") is None

    def test_desktop_only_audit_abstains(self):
        audit = AuditFactory.full(perf={"byStrategy": {"mobile": None}})
        assert fired(audit, "performance.slow-mobile-lcp") is None
        assert fired(audit, "performance.low-mobile-score") is None

    def test_low_mobile_score_lists_largest_opportunities(self, full_audit):
        finding = fired(full_audit, "performance.low-mobile-score")
        assert finding.evidence == [
            "Mobile Lighthouse performance score is 42/100",
            "Opportunity: Eliminate render-blocking resources",
            "Opportunity: Efficiently encode images",
        ]

    @pytest.mark.parametrize("score, fires", [(0.01, True), (0.49, True), (0.5, False), (1.0, False)])
    def test_low_mobile_score_threshold(self, score, fires):
        audit = AuditFactory.full(perf={"byStrategy": {"mobile": {"categoryScore": {"performance": score}}}})
        assert (fired(audit, "performance.low-mobile-score") is not None) is fires

    def test_heavy_page(self, full_audit):
        finding = fired(full_audit, "performance.heavy-page")
        assert finding.evidence == ["https://lakehouse-rentals.com/ transfers 4.3 MB"]


class TestTrustAndSecurityRules:
    def test_no_https_is_heaviest_blocker(self):
        audit = AuditFactory.minimal(security={"tls": {"hasHttps": False}})
        finding = fired(audit, "security.no-https")

        assert finding.severity == Severity.BLOCKER
        assert finding.penalty == 50

    @pytest.mark.parametrize("grade,fires", [("A+", False), ("B", False), ("C", True), ("F", True)])
    def test_ssl_grade(self, grade, fires):
        audit = AuditFactory.minimal(security={"tls": {"sslLabsGrade": grade}})
        assert (fired(audit, "security.weak-ssl-grade") is not None) is fires

    def test_no_reviews_needs_a_reporting_source(self):
        audit = AuditFactory.minimal(trust={"reviews": {"onSite": {"present": False}}})
        assert fired(audit, "trust.no-reviews") is not None

    def test_reviews_found_by_any_source(self):
        audit = AuditFactory.minimal(
            trust={"reviews": {"onSite": {"present": False}, "google": {"present": True, "rating": 4.9}}}
        )
        assert fired(audit, "trust.no-reviews") is None

    def test_weak_rating(self):
        audit = AuditFactory.minimal(trust={"reviews": {"google": {"present": True, "rating": 3.6}}})
        assert fired(audit, "trust.weak-rating").evidence == ["Displayed average rating is 3.6"]

    def test_few_reviews_uses_largest_count(self, full_audit):
        """8 on-site reviews do not fire while Google reports 56"""
        assert fired(full_audit, "trust.few-reviews") is None

    def test_unverified_reviews(self):
        audit = AuditFactory.minimal(
            detected={
                "trustSignals": {
                    "hasReviews": True,
                    "reviewSource": {"name": "Site Reviews", "type": "custom", "isVerified": False},
                }
            }
        )
        assert fired(audit, "trust.unverified-reviews").evidence == ["Reviews come from Site Reviews"]


class TestSeoAndContentRules:
    def test_money_pages_noindexed(self):
        audit = AuditFactory.minimal(seo={"indexability": {"hasNoindexOnMoneyPages": True}})
        finding = fired(audit, "seo.money-pages-noindexed")

        assert finding.severity == Severity.BLOCKER
        assert finding.penalty == 30

    def test_count_rules(self, full_audit):
        assert fired(full_audit, "seo.duplicate-titles").evidence == ["3 pages share a duplicated title"]
        assert fired(full_audit, "seo.missing-titles") is None

    def test_business_schema_either_type(self, full_audit):
        assert fired(full_audit, "seo.no-business-schema") is None

    def test_few_images(self):
        audit = AuditFactory.minimal(content={"imageCount": 6})
        assert fired(audit, "content.few-images").evidence == ["Only 6 images found (aim for 10+)"]

    def test_stale_reviews(self):
        audit = AuditFactory.minimal(content={"mostRecentReviewDate": "2025-06-01"})
        finding = fired(audit, "content.stale-reviews")
        assert finding.evidence == ["Most recent review is 273 days old"]

    def test_recent_reviews(self):
        audit = AuditFactory.minimal(content={"mostRecentReviewDate": "2026-01-15T10:00:00Z"})
        assert fired(audit, "content.stale-reviews") is None

    def test_unparsable_review_date(self):
        audit = AuditFactory.minimal(content={"mostRecentReviewDate": "last spring"})
        assert fired(audit, "content.stale-reviews") is None

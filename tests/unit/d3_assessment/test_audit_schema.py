"""
Test the normalized audit data model

Covers wire-format aliases, partial audits, immutability and the
load/dump helpers.
"""
import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ValidationError
from d3_assessment.audit_schema import NormalizedAudit, dump_audit, load_audit
from d3_assessment.types import AuditStatus, CTALocation, PositionHint, Strategy
from tests.fixtures.audits import AuditFactory

pytestmark = pytest.mark.unit


class TestLoadAudit:
    """Test parsing audits from the wire format"""

    def test_minimal_audit(self):
        """Every signal bundle is optional"""
        audit = AuditFactory.minimal()

        assert audit.audit_id == "audit-min-001"
        assert audit.status == AuditStatus.PENDING
        assert audit.perf is None
        assert audit.crawl is None
        assert audit.detected is None
        assert audit.scoring is None
        assert audit.errors is None
        assert audit.booking_flow is None
        assert audit.trust_analysis is None

    def test_full_audit_camel_case_fields(self):
        """camelCase keys populate snake_case attributes"""
        audit = AuditFactory.full()

        assert audit.inputs.campaign.initiator_id == "user-7"
        assert audit.perf.by_strategy.mobile.metrics.lcp_ms == 4800
        assert audit.tech.analytics.has_ga4 is True
        assert audit.tech.analytics.has_gtm is False
        assert audit.seo.schema_.has_lodging_business is True
        assert audit.seo.schema_.has_faq is False
        assert audit.crawl.conversion_elements.has_persistent_booking_cta_on_mobile is False
        assert audit.crawl.pages[0].resources.has_cookie_banner_blocking_ui is False
        assert audit.crawl.pages[0].detected_ctas[0].position_hint == PositionHint.ABOVE_FOLD
        assert audit.booking_flow.has_booking_cta is True
        assert audit.booking_flow.cta_location == CTALocation.ABOVE_FOLD

    def test_load_from_json_text(self):
        audit = load_audit(json.dumps(AuditFactory.minimal_payload()))
        assert isinstance(audit, NormalizedAudit)
        assert audit.domain == "quiet-cabin.com"

    def test_snake_case_names_accepted(self):
        """Attributes can also be populated by their Python names"""
        audit = load_audit(
            {
                "audit_id": "a-1",
                "domain": "x.com",
                "generated_at": "2026-01-01T00:00:00+00:00",
                "inputs": {"audit_id": "a-1", "domain": "x.com"},
            }
        )
        assert audit.audit_id == "a-1"

    def test_unknown_fields_ignored(self):
        payload = AuditFactory.minimal_payload()
        payload["somethingNew"] = {"a": 1}
        assert load_audit(payload).audit_id == "audit-min-001"

    def test_blank_audit_id_rejected(self):
        """An audit id must be a non-empty string"""
        payload = AuditFactory.minimal_payload(audit_id="   ")
        with pytest.raises(ValidationError) as exc_info:
            load_audit(payload)

        assert exc_info.value.error_code == "VALIDATION_ERROR"
        assert exc_info.value.details["errors"][0]["loc"] == ["auditId"]

    def test_missing_required_field(self):
        payload = AuditFactory.minimal_payload()
        del payload["generatedAt"]
        with pytest.raises(ValidationError):
            load_audit(payload)

    def test_invalid_json_text(self):
        with pytest.raises(ValidationError):
            load_audit("{not json")

    def test_detector_values_are_bounded(self):
        """Friction score is limited to 0-100"""
        with pytest.raises(ValidationError):
            AuditFactory.full(detected={"bookingFlow": {"frictionScore": 140}})

    @pytest.mark.parametrize("score", [42, 1.01, -0.1])
    def test_lighthouse_scores_use_unit_scale(self, score):
        """Pre-scaled 0-100 category scores are rejected, not guessed at"""
        with pytest.raises(ValidationError):
            AuditFactory.full(perf={"byStrategy": {"mobile": {"categoryScore": {"performance": score}}}})


class TestAuditModelBehaviour:
    def test_records_are_frozen(self, full_audit):
        with pytest.raises(PydanticValidationError):
            full_audit.domain = "other.com"

    def test_model_copy_leaves_original(self, full_audit):
        """Enrichment returns a new audit"""
        updated = full_audit.model_copy(update={"detected": None})

        assert updated.detected is None
        assert full_audit.detected is not None

    def test_strategy_results_get(self, full_audit):
        by_strategy = full_audit.perf.by_strategy
        assert by_strategy.get(Strategy.MOBILE) is by_strategy.mobile
        assert by_strategy.get("desktop") is by_strategy.desktop

    def test_detected_social_count(self, full_audit):
        assert full_audit.trust_analysis.detected_social_count == 1


class TestDumpAudit:
    def test_dump_uses_wire_names(self, full_audit):
        """dump_audit writes the camelCase wire form"""
        data = dump_audit(full_audit)

        assert data["auditId"] == "audit-full-001"
        assert data["tech"]["analytics"]["hasGA4"] is True
        assert data["seo"]["schema"]["hasLodgingBusiness"] is True
        assert data["crawl"]["pages"][0]["detectedCTAs"][0]["label"] == "Book Now"
        assert data["detected"]["bookingFlow"]["hasBookingCTA"] is True
        assert data["crawl"]["conversionElements"]["hasPersistentBookingCTAOnMobile"] is False

    def test_dump_omits_absent_parts(self, minimal_audit):
        data = dump_audit(minimal_audit)
        assert "perf" not in data
        assert "scoring" not in data

    def test_dump_then_load_is_equal(self, full_audit):
        assert load_audit(dump_audit(full_audit)) == full_audit

"""
Audit Export Transform

Flattens one ``NormalizedAudit`` into the seven warehouse row sets:

- audits: one row with scores and signals flattened to columns
- findings: one row per distinct finding id, flagged by membership in
  the top issues and fast wins
- crawl_pages, booking_steps, session_replays, module_errors,
  lighthouse_opportunities: one row per source record

The transform is pure. Absent parts of the audit produce null columns and
empty child lists, never errors.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ExportError
from core.logging import get_logger
from core.utils import round_half_up, utc_now
from d3_assessment.audit_schema import CrawledPage, LighthouseResult, NormalizedAudit, ScoringOutput
from d3_assessment.types import FormKind, PositionHint, ScoreCategory, Strategy
from d5_scoring.issue_selector import merge_finding_lists

from .schemas import (
    AuditExportRows,
    AuditRow,
    BookingStepRow,
    CrawlPageRow,
    FindingRow,
    LighthouseOpportunityRow,
    ModuleErrorRow,
    SessionReplayRow,
)

logger = get_logger(__name__, domain="d10")


def _path(obj: Any, dotted: str) -> Any:
    """Follow a dotted attribute path, returning None at the first gap"""
    for name in dotted.split("."):
        if obj is None:
            return None
        obj = getattr(obj, name, None)
    return obj


def _value(value: Any) -> Any:
    """Enum members export as their value"""
    return getattr(value, "value", value)


def _to_int(value: Optional[float]) -> Optional[int]:
    if value is None:
        return None
    return int(round_half_up(value))


def _lighthouse_score(value: Optional[float]) -> Optional[int]:
    """Lighthouse category scores are 0-1; columns hold 0-100"""
    if value is None:
        return None
    return _to_int(value * 100)


def _count(items: Optional[list], predicate=None) -> Optional[int]:
    if items is None:
        return None
    if predicate is None:
        return len(items)
    return sum(1 for item in items if predicate(item))


def _strategy_columns(prefix: str, result: Optional[LighthouseResult]) -> dict:
    metrics = result.metrics if result else None
    scores = result.category_score if result else None
    return {
        f"{prefix}_lcp_ms": _to_int(_path(metrics, "lcp_ms")),
        f"{prefix}_cls": _path(metrics, "cls"),
        f"{prefix}_inp_ms": _to_int(_path(metrics, "inp_ms")),
        f"{prefix}_fcp_ms": _to_int(_path(metrics, "fcp_ms")),
        f"{prefix}_tbt_ms": _to_int(_path(metrics, "tbt_ms")),
        f"{prefix}_speed_index_ms": _to_int(_path(metrics, "speed_index_ms")),
        f"{prefix}_performance_score": _lighthouse_score(_path(scores, "performance")),
        f"{prefix}_accessibility_score": _lighthouse_score(_path(scores, "accessibility")),
    }


def _category_columns(scoring: Optional[ScoringOutput]) -> dict:
    columns = {}
    for category in ScoreCategory:
        category_score = scoring.category_scores.get(category) if scoring else None
        columns[f"{category.value}_score"] = category_score.score if category_score else None
        columns[f"{category.value}_blocker_count"] = category_score.blocker_count if category_score else None
    return columns


def build_audit_row(audit: NormalizedAudit, inserted_at: datetime) -> AuditRow:
    """Flatten the audit-level fields into one row"""
    scoring = audit.scoring
    perf = audit.perf
    flow = audit.booking_flow
    artifacts = audit.artifacts

    columns = {
        "audit_id": audit.audit_id,
        "domain": audit.domain,
        "status": _value(audit.status),
        "generated_at": audit.generated_at,
        "started_at": audit.inputs.started_at,
        "campaign_id": _path(audit.inputs, "campaign.id"),
        "campaign_source": _path(audit.inputs, "campaign.source"),
        "initiator_id": _path(audit.inputs, "campaign.initiator_id"),
        "overall_score": _path(scoring, "overall_score"),
        "projected_score": _path(scoring, "projected_score"),
        "projected_score_with_product": _path(scoring, "projected_score_with_product"),
        "conversion_loss_percent": _path(scoring, "estimated_impact.conversion_loss_percent"),
        # Tech
        "cms": _path(audit.tech, "cms"),
        "cdn": _path(audit.tech, "cdn"),
        "frameworks": list(_path(audit.tech, "frameworks") or []),
        "has_ga4": _path(audit.tech, "analytics.has_ga4"),
        "has_gtm": _path(audit.tech, "analytics.has_gtm"),
        "has_meta_pixel": _path(audit.tech, "analytics.has_meta_pixel"),
        "has_google_ads_tag": _path(audit.tech, "analytics.has_google_ads_tag"),
        "booking_engine_provider": _path(audit.tech, "booking_engine.provider"),
        "booking_engine_embedded": _path(audit.tech, "booking_engine.embedded"),
        "booking_engine_separate_domain": _path(audit.tech, "booking_engine.separate_domain"),
        "chat_widget": _path(audit.tech, "chat_widget"),
        # SEO
        "robots_txt_present": _path(audit.seo, "indexability.robots_txt_present"),
        "sitemap_present": _path(audit.seo, "indexability.sitemap_present"),
        "has_noindex_on_money_pages": _path(audit.seo, "indexability.has_noindex_on_money_pages"),
        "missing_titles_count": _path(audit.seo, "meta.missing_titles_count"),
        "duplicate_titles_count": _path(audit.seo, "meta.duplicate_titles_count"),
        "missing_descriptions_count": _path(audit.seo, "meta.missing_descriptions_count"),
        "has_local_business_schema": _path(audit.seo, "schema_.has_local_business"),
        "has_lodging_business_schema": _path(audit.seo, "schema_.has_lodging_business"),
        "has_faq_schema": _path(audit.seo, "schema_.has_faq"),
        "has_review_schema": _path(audit.seo, "schema_.has_review"),
        # Trust
        "has_company_name": _path(audit.trust, "business_identity.has_company_name"),
        "has_phone": _path(audit.trust, "business_identity.has_phone"),
        "has_address": _path(audit.trust, "business_identity.has_address"),
        "onsite_reviews_present": _path(audit.trust, "reviews.on_site.present"),
        "onsite_reviews_count": _path(audit.trust, "reviews.on_site.count_hint"),
        "google_reviews_present": _path(audit.trust, "reviews.google.present"),
        "google_reviews_rating": _path(audit.trust, "reviews.google.rating"),
        "google_reviews_count": _path(audit.trust, "reviews.google.count"),
        # Security
        "has_https": _path(audit.security, "tls.has_https"),
        "has_mixed_content": _path(audit.security, "tls.mixed_content"),
        "ssl_labs_grade": _path(audit.security, "tls.ssl_labs_grade"),
        "has_hsts": _path(audit.security, "headers.hsts"),
        "has_csp": _path(audit.security, "headers.csp"),
        # Content
        "image_count": _path(audit.content, "image_count"),
        "hero_image_width": _path(audit.content, "hero_image_width"),
        "has_video": _path(audit.content, "has_video"),
        "description_word_count": _path(audit.content, "description_word_count"),
        "has_direct_booking_benefits": _path(audit.content, "has_direct_booking_benefits"),
        "has_local_area_content": _path(audit.content, "has_local_area_content"),
        # Booking path
        "booking_click_depth": _path(audit.crawl, "booking_path.click_depth_from_home"),
        "booking_cross_domain": _path(audit.crawl, "booking_path.cross_domain"),
        "booking_cross_domain_host": _path(audit.crawl, "booking_path.cross_domain_host"),
        # Conversion
        "has_persistent_booking_cta_mobile": _path(
            audit.crawl, "conversion_elements.has_persistent_booking_cta_on_mobile"
        ),
        "shows_fees_before_checkout": _path(audit.crawl, "conversion_elements.shows_fees_before_checkout"),
        "shows_cancellation_before_checkout": _path(
            audit.crawl, "conversion_elements.shows_cancellation_before_checkout"
        ),
        "requires_account_creation": _path(audit.crawl, "conversion_elements.requires_account_creation"),
        "supports_instant_booking": _path(audit.crawl, "conversion_elements.supports_instant_booking"),
        "has_inquiry_fallback": _path(audit.crawl, "conversion_elements.has_inquiry_fallback"),
        # Detector facts
        "detected_booking_engine": _path(flow, "booking_engine.name"),
        "detected_cta_location": _value(_path(flow, "cta_location")),
        "detected_friction_score": _path(flow, "friction_score"),
        "detected_clicks_to_book": _path(flow, "estimated_clicks_to_book"),
        "detected_trust_score": _path(audit.trust_analysis, "overall_trust_score"),
        # Artifacts
        "screenshot_count": _count(_path(artifacts, "screenshots")),
        "session_replay_count": _count(_path(artifacts, "session_replays")),
        "error_count": _count(audit.errors),
        "top_issue_ids": [f.id for f in scoring.top_issues] if scoring else [],
        "fast_win_ids": [f.id for f in scoring.fast_wins] if scoring else [],
        "top_contributors": list(_path(scoring, "estimated_impact.top_contributors") or []),
        "scoring_version": _path(scoring, "version"),
        "inserted_at": inserted_at,
    }
    columns.update(_category_columns(scoring))
    columns.update(_strategy_columns("mobile", _path(perf, "by_strategy.mobile")))
    columns.update(_strategy_columns("desktop", _path(perf, "by_strategy.desktop")))
    return AuditRow(**columns)


def build_finding_rows(audit: NormalizedAudit, inserted_at: datetime) -> List[FindingRow]:
    """One row per distinct finding id across categories, top issues and fast wins"""
    scoring = audit.scoring
    if scoring is None:
        return []

    rows = []
    for merged in merge_finding_lists(scoring.category_scores, scoring.top_issues, scoring.fast_wins):
        finding = merged.finding
        rows.append(
            FindingRow(
                audit_id=audit.audit_id,
                finding_id=finding.id,
                title=finding.title,
                category=_value(finding.category),
                severity=_value(finding.severity),
                impact=finding.impact,
                confidence=finding.confidence,
                penalty=finding.penalty,
                fix=finding.fix or None,
                effort=_value(finding.effort),
                evidence=list(finding.evidence),
                tags=list(finding.tags),
                is_top_issue=merged.is_top_issue,
                is_fast_win=merged.is_fast_win,
                ranking=merged.ranking,
                inserted_at=inserted_at,
            )
        )
    return rows


def build_crawl_page_row(audit_id: str, page: CrawledPage, inserted_at: datetime) -> CrawlPageRow:
    ctas = page.detected_ctas
    forms = page.forms
    return CrawlPageRow(
        audit_id=audit_id,
        url=page.url,
        kind=_value(page.kind),
        strategy=_value(page.strategy),
        fetched_at=page.fetched_at,
        screenshot_url=page.screenshot_url,
        above_fold_text=page.above_fold_text,
        dom_hash=page.dom_hash,
        cta_count=_count(ctas),
        primary_cta_count=_count(ctas, lambda c: c.is_primary_guess),
        above_fold_cta_count=_count(ctas, lambda c: c.position_hint == PositionHint.ABOVE_FOLD),
        cta_labels=[c.label for c in ctas or []],
        form_count=_count(forms),
        booking_form_count=_count(forms, lambda f: f.kind == FormKind.BOOKING),
        inquiry_form_count=_count(forms, lambda f: f.kind == FormKind.INQUIRY),
        has_phone=_path(page, "contacts.has_phone"),
        has_email=_path(page, "contacts.has_email"),
        has_address=_path(page, "contacts.has_address"),
        has_live_chat=_path(page, "contacts.has_live_chat"),
        has_cancellation_policy=_path(page, "policies.has_cancellation_policy"),
        has_house_rules=_path(page, "policies.has_house_rules"),
        has_privacy_policy=_path(page, "policies.has_privacy_policy"),
        has_terms=_path(page, "policies.has_terms"),
        has_reviews_section=_path(page, "trust_elements.has_reviews_section"),
        has_third_party_review_badges=_path(page, "trust_elements.has_third_party_review_badges"),
        has_secure_payment_badges=_path(page, "trust_elements.has_secure_payment_badges"),
        has_social_proof_mentions=_path(page, "trust_elements.has_social_proof_mentions"),
        total_requests=_path(page, "resources.total_requests"),
        total_bytes=_path(page, "resources.total_bytes"),
        third_party_requests=_path(page, "resources.third_party_requests"),
        third_party_bytes=_path(page, "resources.third_party_bytes"),
        has_cookie_banner_blocking_ui=_path(page, "resources.has_cookie_banner_blocking_ui"),
        inserted_at=inserted_at,
    )


def build_opportunity_rows(audit: NormalizedAudit, inserted_at: datetime) -> List[LighthouseOpportunityRow]:
    """Opportunities for mobile then desktop, each row tagged with its strategy"""
    rows = []
    by_strategy = _path(audit.perf, "by_strategy")
    for strategy in (Strategy.MOBILE, Strategy.DESKTOP):
        result = by_strategy.get(strategy) if by_strategy else None
        if result is None:
            continue
        for opportunity in result.opportunities:
            rows.append(
                LighthouseOpportunityRow(
                    audit_id=audit.audit_id,
                    strategy=strategy.value,
                    opportunity_id=opportunity.id,
                    title=opportunity.title,
                    description=opportunity.description,
                    estimated_savings_ms=_to_int(opportunity.estimated_savings_ms),
                    estimated_savings_bytes=_to_int(opportunity.estimated_savings_bytes),
                    inserted_at=inserted_at,
                )
            )
    return rows


def transform_audit_to_rows(audit: NormalizedAudit, inserted_at: Optional[datetime] = None) -> AuditExportRows:
    """
    Transform one audit into every warehouse row it produces

    Args:
        audit: The audit to flatten
        inserted_at: Timestamp stamped on every row; captured once when omitted

    Returns:
        AuditExportRows with one audit row and the child row sets

    Raises:
        ExportError: if a value does not fit its warehouse column
    """
    inserted_at = inserted_at or utc_now()
    audit_id = audit.audit_id
    try:
        rows = _build_rows(audit, inserted_at)
    except PydanticValidationError as e:
        raise ExportError(f"Audit {audit_id} does not fit the warehouse schema: {e}", audit_id=audit_id) from e

    logger.debug(
        f"Transformed audit {audit_id} into {rows.row_count} rows",
        extra={"audit_id": audit_id, "finding_count": len(rows.findings)},
    )
    return rows


def _build_rows(audit: NormalizedAudit, inserted_at: datetime) -> AuditExportRows:
    audit_id = audit.audit_id

    pages = _path(audit.crawl, "pages") or []
    steps = _path(audit.crawl, "booking_path.steps") or []
    replays = _path(audit.artifacts, "session_replays") or []

    return AuditExportRows(
        audit=build_audit_row(audit, inserted_at),
        findings=build_finding_rows(audit, inserted_at),
        crawl_pages=[build_crawl_page_row(audit_id, page, inserted_at) for page in pages],
        booking_steps=[
            BookingStepRow(
                audit_id=audit_id,
                step_index=index,
                url=step.url,
                kind=_value(step.kind),
                success=step.success,
                friction_notes=list(step.friction_notes or []),
                inserted_at=inserted_at,
            )
            for index, step in enumerate(steps)
        ],
        session_replays=[
            SessionReplayRow(
                audit_id=audit_id,
                strategy=_value(replay.strategy),
                replay_url=replay.replay_url,
                video_url=replay.video_url,
                duration_ms=replay.duration_ms,
                started_at=replay.started_at,
                viewport_width=replay.viewport_width,
                viewport_height=replay.viewport_height,
                reached_booking=replay.reached_booking,
                blocked_reason=replay.blocked_reason,
                marker_count=_count(replay.markers),
                inserted_at=inserted_at,
            )
            for replay in replays
        ],
        module_errors=[
            ModuleErrorRow(
                audit_id=audit_id,
                module=_value(error.module),
                severity=_value(error.severity),
                message=error.message,
                retriable=error.retriable,
                inserted_at=inserted_at,
            )
            for error in audit.errors or []
        ],
        lighthouse_opportunities=build_opportunity_rows(audit, inserted_at),
    )

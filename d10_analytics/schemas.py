"""
Analytics Export Schemas

Pydantic row models for the warehouse export. One model per warehouse table;
field names match the warehouse column names exactly so a row's
``model_dump()`` can be inserted as-is.

Every column that comes from an optional part of an audit is ``Optional``
and defaults to ``None``; repeated columns default to an empty list.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExportRow(BaseModel):
    """Base class for warehouse rows"""

    model_config = ConfigDict(extra="forbid")

    audit_id: str = Field(..., min_length=1, description="Audit the row belongs to")
    inserted_at: datetime = Field(..., description="Shared timestamp of the transform run")


class AuditRow(ExportRow):
    """One row per audit with flattened scores and signals"""

    domain: str
    status: str
    generated_at: datetime
    started_at: Optional[datetime] = None

    # Campaign metadata
    campaign_id: Optional[str] = None
    campaign_source: Optional[str] = None
    initiator_id: Optional[str] = None

    # Scoring summary
    overall_score: Optional[int] = None
    projected_score: Optional[int] = None
    projected_score_with_product: Optional[int] = None
    conversion_loss_percent: Optional[float] = None

    # Category scores
    conversion_score: Optional[int] = None
    conversion_blocker_count: Optional[int] = None
    performance_score: Optional[int] = None
    performance_blocker_count: Optional[int] = None
    trust_score: Optional[int] = None
    trust_blocker_count: Optional[int] = None
    seo_score: Optional[int] = None
    seo_blocker_count: Optional[int] = None
    security_score: Optional[int] = None
    security_blocker_count: Optional[int] = None
    content_score: Optional[int] = None
    content_blocker_count: Optional[int] = None

    # Performance metrics (mobile)
    mobile_lcp_ms: Optional[int] = None
    mobile_cls: Optional[float] = None
    mobile_inp_ms: Optional[int] = None
    mobile_fcp_ms: Optional[int] = None
    mobile_tbt_ms: Optional[int] = None
    mobile_speed_index_ms: Optional[int] = None
    mobile_performance_score: Optional[int] = None
    mobile_accessibility_score: Optional[int] = None

    # Performance metrics (desktop)
    desktop_lcp_ms: Optional[int] = None
    desktop_cls: Optional[float] = None
    desktop_inp_ms: Optional[int] = None
    desktop_fcp_ms: Optional[int] = None
    desktop_tbt_ms: Optional[int] = None
    desktop_speed_index_ms: Optional[int] = None
    desktop_performance_score: Optional[int] = None
    desktop_accessibility_score: Optional[int] = None

    # Tech signals
    cms: Optional[str] = None
    cdn: Optional[str] = None
    frameworks: List[str] = Field(default_factory=list)
    has_ga4: Optional[bool] = None
    has_gtm: Optional[bool] = None
    has_meta_pixel: Optional[bool] = None
    has_google_ads_tag: Optional[bool] = None
    booking_engine_provider: Optional[str] = None
    booking_engine_embedded: Optional[bool] = None
    booking_engine_separate_domain: Optional[bool] = None
    chat_widget: Optional[str] = None

    # SEO signals
    robots_txt_present: Optional[bool] = None
    sitemap_present: Optional[bool] = None
    has_noindex_on_money_pages: Optional[bool] = None
    missing_titles_count: Optional[int] = None
    duplicate_titles_count: Optional[int] = None
    missing_descriptions_count: Optional[int] = None
    has_local_business_schema: Optional[bool] = None
    has_lodging_business_schema: Optional[bool] = None
    has_faq_schema: Optional[bool] = None
    has_review_schema: Optional[bool] = None

    # Trust signals
    has_company_name: Optional[bool] = None
    has_phone: Optional[bool] = None
    has_address: Optional[bool] = None
    onsite_reviews_present: Optional[bool] = None
    onsite_reviews_count: Optional[int] = None
    google_reviews_present: Optional[bool] = None
    google_reviews_rating: Optional[float] = None
    google_reviews_count: Optional[int] = None

    # Security signals
    has_https: Optional[bool] = None
    has_mixed_content: Optional[bool] = None
    ssl_labs_grade: Optional[str] = None
    has_hsts: Optional[bool] = None
    has_csp: Optional[bool] = None

    # Content signals
    image_count: Optional[int] = None
    hero_image_width: Optional[int] = None
    has_video: Optional[bool] = None
    description_word_count: Optional[int] = None
    has_direct_booking_benefits: Optional[bool] = None
    has_local_area_content: Optional[bool] = None

    # Booking path summary
    booking_click_depth: Optional[int] = None
    booking_cross_domain: Optional[bool] = None
    booking_cross_domain_host: Optional[str] = None

    # Conversion signals
    has_persistent_booking_cta_mobile: Optional[bool] = None
    shows_fees_before_checkout: Optional[bool] = None
    shows_cancellation_before_checkout: Optional[bool] = None
    requires_account_creation: Optional[bool] = None
    supports_instant_booking: Optional[bool] = None
    has_inquiry_fallback: Optional[bool] = None

    # Detector facts
    detected_booking_engine: Optional[str] = None
    detected_cta_location: Optional[str] = None
    detected_friction_score: Optional[int] = None
    detected_clicks_to_book: Optional[int] = None
    detected_trust_score: Optional[int] = None

    # Artifact counts
    screenshot_count: Optional[int] = None
    session_replay_count: Optional[int] = None
    error_count: Optional[int] = None

    # Issue summary
    top_issue_ids: List[str] = Field(default_factory=list)
    fast_win_ids: List[str] = Field(default_factory=list)
    top_contributors: List[str] = Field(default_factory=list)

    scoring_version: Optional[str] = None


class FindingRow(ExportRow):
    """One row per distinct finding id"""

    finding_id: str = Field(..., min_length=1)
    title: str
    category: str
    severity: str
    impact: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    penalty: int = Field(..., ge=0)
    fix: Optional[str] = None
    effort: Optional[str] = None
    evidence: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    is_top_issue: bool = False
    is_fast_win: bool = False
    ranking: Optional[int] = Field(default=None, ge=1, description="1-based position in top issues or fast wins")


class CrawlPageRow(ExportRow):
    """One row per crawled page"""

    url: str
    kind: str
    strategy: str
    fetched_at: Optional[datetime] = None
    screenshot_url: Optional[str] = None
    above_fold_text: Optional[str] = None
    dom_hash: Optional[str] = None

    cta_count: Optional[int] = None
    primary_cta_count: Optional[int] = None
    above_fold_cta_count: Optional[int] = None
    cta_labels: List[str] = Field(default_factory=list)

    form_count: Optional[int] = None
    booking_form_count: Optional[int] = None
    inquiry_form_count: Optional[int] = None

    has_phone: Optional[bool] = None
    has_email: Optional[bool] = None
    has_address: Optional[bool] = None
    has_live_chat: Optional[bool] = None

    has_cancellation_policy: Optional[bool] = None
    has_house_rules: Optional[bool] = None
    has_privacy_policy: Optional[bool] = None
    has_terms: Optional[bool] = None

    has_reviews_section: Optional[bool] = None
    has_third_party_review_badges: Optional[bool] = None
    has_secure_payment_badges: Optional[bool] = None
    has_social_proof_mentions: Optional[bool] = None

    total_requests: Optional[int] = None
    total_bytes: Optional[int] = None
    third_party_requests: Optional[int] = None
    third_party_bytes: Optional[int] = None
    has_cookie_banner_blocking_ui: Optional[bool] = None


class BookingStepRow(ExportRow):
    """One row per booking path step"""

    step_index: int = Field(..., ge=0)
    url: str
    kind: str
    success: bool
    friction_notes: List[str] = Field(default_factory=list)


class SessionReplayRow(ExportRow):
    """One row per session replay"""

    strategy: str
    replay_url: str
    video_url: Optional[str] = None
    duration_ms: int = Field(..., ge=0)
    started_at: Optional[datetime] = None
    viewport_width: Optional[int] = None
    viewport_height: Optional[int] = None
    reached_booking: bool
    blocked_reason: Optional[str] = None
    marker_count: Optional[int] = None


class ModuleErrorRow(ExportRow):
    """One row per upstream module error"""

    module: str
    severity: str
    message: str
    retriable: bool


class LighthouseOpportunityRow(ExportRow):
    """One row per Lighthouse opportunity and strategy"""

    strategy: str
    opportunity_id: str
    title: str
    description: Optional[str] = None
    estimated_savings_ms: Optional[int] = None
    estimated_savings_bytes: Optional[int] = None


class AuditExportRows(BaseModel):
    """Every row produced from one audit"""

    audit: AuditRow
    findings: List[FindingRow] = Field(default_factory=list)
    crawl_pages: List[CrawlPageRow] = Field(default_factory=list)
    booking_steps: List[BookingStepRow] = Field(default_factory=list)
    session_replays: List[SessionReplayRow] = Field(default_factory=list)
    module_errors: List[ModuleErrorRow] = Field(default_factory=list)
    lighthouse_opportunities: List[LighthouseOpportunityRow] = Field(default_factory=list)

    def table_rows(self) -> Dict[str, List[ExportRow]]:
        """Rows keyed by warehouse table name, in insert order"""
        return {
            "audits": [self.audit],
            "findings": list(self.findings),
            "crawl_pages": list(self.crawl_pages),
            "booking_steps": list(self.booking_steps),
            "session_replays": list(self.session_replays),
            "module_errors": list(self.module_errors),
            "lighthouse_opportunities": list(self.lighthouse_opportunities),
        }

    @property
    def row_count(self) -> int:
        return sum(len(rows) for rows in self.table_rows().values())

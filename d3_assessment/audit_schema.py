"""
Normalized audit data model

The NormalizedAudit tree is produced once per audit run by the orchestrator,
enriched here with detector facts and scoring, and flattened by the analytics
export. Every record is immutable; enrichment returns a new audit via
``model_copy``. Any signal bundle may be missing (partial audit), so every
bundle and most leaf fields are optional.

Attributes are snake_case in Python and camelCase on the wire
(``auditId``, ``byStrategy``, ``hasGA4``).
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from core.exceptions import ValidationError

from .types import (
    AuditStatus,
    BadgeCategory,
    BookingStepKind,
    CTALocation,
    Effort,
    EngineType,
    ErrorSeverity,
    FormKind,
    ModuleName,
    PageKind,
    PositionHint,
    ReviewSourceType,
    ScoreCategory,
    Severity,
    Strategy,
)


class AuditModel(BaseModel):
    """Base for every record in the audit tree"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Request & errors
# ---------------------------------------------------------------------------


class Campaign(AuditModel):
    id: str
    source: Optional[str] = None
    initiator_id: Optional[str] = None


class AuditPageTarget(AuditModel):
    url: str
    kind: PageKind = PageKind.OTHER


class AuditRequest(AuditModel):
    """What the orchestrator was asked to audit"""

    audit_id: str
    domain: str
    started_at: Optional[datetime] = None
    campaign: Optional[Campaign] = None
    pages: List[AuditPageTarget] = Field(default_factory=list)


class ModuleError(AuditModel):
    """Failure of one upstream module, attached instead of aborting the audit"""

    module: ModuleName
    severity: ErrorSeverity
    message: str
    retriable: bool = False


# ---------------------------------------------------------------------------
# Performance
# ---------------------------------------------------------------------------


class LighthouseCategoryScores(AuditModel):
    """Lighthouse category scores on Lighthouse's own 0-1 scale"""

    performance: Optional[float] = Field(default=None, ge=0, le=1)
    accessibility: Optional[float] = Field(default=None, ge=0, le=1)
    best_practices: Optional[float] = Field(default=None, ge=0, le=1)
    seo: Optional[float] = Field(default=None, ge=0, le=1)


class LighthouseMetrics(AuditModel):
    lcp_ms: Optional[float] = None
    cls: Optional[float] = None
    inp_ms: Optional[float] = None
    fcp_ms: Optional[float] = None
    tbt_ms: Optional[float] = None
    speed_index_ms: Optional[float] = None


class LighthouseOpportunity(AuditModel):
    id: str
    title: str
    description: Optional[str] = None
    estimated_savings_ms: Optional[float] = None
    estimated_savings_bytes: Optional[float] = None


class LighthouseResult(AuditModel):
    fetched_at: Optional[datetime] = None
    url: Optional[str] = None
    category_score: LighthouseCategoryScores = Field(default_factory=LighthouseCategoryScores)
    metrics: LighthouseMetrics = Field(default_factory=LighthouseMetrics)
    opportunities: List[LighthouseOpportunity] = Field(default_factory=list)


class StrategyResults(AuditModel):
    mobile: Optional[LighthouseResult] = None
    desktop: Optional[LighthouseResult] = None

    def get(self, strategy: Strategy) -> Optional[LighthouseResult]:
        return getattr(self, Strategy(strategy).value)


class PerformanceSignals(AuditModel):
    by_strategy: StrategyResults = Field(default_factory=StrategyResults)


# ---------------------------------------------------------------------------
# Crawl
# ---------------------------------------------------------------------------


class CTAButton(AuditModel):
    label: str
    href: Optional[str] = None
    is_primary_guess: bool = False
    position_hint: PositionHint = PositionHint.UNKNOWN


class DetectedForm(AuditModel):
    kind: FormKind = FormKind.UNKNOWN
    fields: List[str] = Field(default_factory=list)
    submit_label: Optional[str] = None


class ContactSignals(AuditModel):
    has_phone: bool = False
    has_email: bool = False
    has_address: bool = False
    has_live_chat: bool = False


class PolicySignals(AuditModel):
    has_cancellation_policy: bool = False
    has_house_rules: bool = False
    has_privacy_policy: bool = False
    has_terms: bool = False
    policy_links: Optional[List[str]] = None


class TrustElementSignals(AuditModel):
    has_reviews_section: bool = False
    has_third_party_review_badges: bool = False
    has_secure_payment_badges: bool = False
    has_social_proof_mentions: bool = False


class ResourceSummary(AuditModel):
    total_requests: Optional[int] = None
    total_bytes: Optional[int] = None
    third_party_requests: Optional[int] = None
    third_party_bytes: Optional[int] = None
    has_cookie_banner_blocking_ui: Optional[bool] = Field(default=None, alias="hasCookieBannerBlockingUI")


class CrawledPage(AuditModel):
    url: str
    kind: PageKind = PageKind.OTHER
    strategy: Strategy = Strategy.MOBILE
    fetched_at: Optional[datetime] = None
    screenshot_url: Optional[str] = None
    above_fold_text: Optional[str] = None
    dom_hash: Optional[str] = None
    detected_ctas: Optional[List[CTAButton]] = Field(default=None, alias="detectedCTAs")
    forms: Optional[List[DetectedForm]] = None
    contacts: Optional[ContactSignals] = None
    policies: Optional[PolicySignals] = None
    trust_elements: Optional[TrustElementSignals] = None
    resources: Optional[ResourceSummary] = None


class BookingStep(AuditModel):
    url: str
    kind: BookingStepKind = BookingStepKind.UNKNOWN
    success: bool = False
    friction_notes: Optional[List[str]] = None


class BookingPathSignals(AuditModel):
    steps: List[BookingStep] = Field(default_factory=list)
    click_depth_from_home: Optional[int] = None
    cross_domain: Optional[bool] = None
    cross_domain_host: Optional[str] = None


class ConversionSignals(AuditModel):
    has_persistent_booking_cta_on_mobile: Optional[bool] = Field(
        default=None, alias="hasPersistentBookingCTAOnMobile"
    )
    shows_fees_before_checkout: Optional[bool] = None
    shows_cancellation_before_checkout: Optional[bool] = None
    requires_account_creation: Optional[bool] = None
    supports_instant_booking: Optional[bool] = None
    has_inquiry_fallback: Optional[bool] = None


class CrawlSignals(AuditModel):
    pages: List[CrawledPage] = Field(default_factory=list)
    booking_path: Optional[BookingPathSignals] = None
    conversion_elements: Optional[ConversionSignals] = None


# ---------------------------------------------------------------------------
# Tech / SEO / Trust / Security / Content
# ---------------------------------------------------------------------------


class AnalyticsTags(AuditModel):
    has_ga4: bool = Field(default=False, alias="hasGA4")
    has_gtm: bool = Field(default=False, alias="hasGTM")
    has_meta_pixel: bool = False
    has_google_ads_tag: bool = False


class BookingEngineSignals(AuditModel):
    provider: Optional[str] = None
    embedded: Optional[bool] = None
    separate_domain: Optional[bool] = None


class TechSignals(AuditModel):
    cms: Optional[str] = None
    frameworks: Optional[List[str]] = None
    cdn: Optional[str] = None
    analytics: Optional[AnalyticsTags] = None
    booking_engine: Optional[BookingEngineSignals] = None
    chat_widget: Optional[str] = None


class Indexability(AuditModel):
    robots_txt_present: Optional[bool] = None
    sitemap_present: Optional[bool] = None
    has_noindex_on_money_pages: Optional[bool] = None


class MetaTagSummary(AuditModel):
    missing_titles_count: Optional[int] = None
    duplicate_titles_count: Optional[int] = None
    missing_descriptions_count: Optional[int] = None


class StructuredDataSummary(AuditModel):
    has_local_business: Optional[bool] = None
    has_lodging_business: Optional[bool] = None
    has_faq: Optional[bool] = Field(default=None, alias="hasFAQ")
    has_review: Optional[bool] = None


class SeoSignals(AuditModel):
    indexability: Optional[Indexability] = None
    meta: Optional[MetaTagSummary] = None
    schema_: Optional[StructuredDataSummary] = Field(default=None, alias="schema")


class BusinessIdentity(AuditModel):
    has_company_name: Optional[bool] = None
    matches_domain_name_hint: Optional[bool] = None
    has_phone: Optional[bool] = None
    has_address: Optional[bool] = None


class OnSiteReviews(AuditModel):
    present: bool = False
    count_hint: Optional[int] = None


class GoogleReviews(AuditModel):
    present: bool = False
    rating: Optional[float] = None
    count: Optional[int] = None


class PresenceFlag(AuditModel):
    present: bool = False


class ReviewSignals(AuditModel):
    on_site: Optional[OnSiteReviews] = None
    google: Optional[GoogleReviews] = None
    airbnb_or_vrbo_badges: Optional[PresenceFlag] = None


class TrustSignals(AuditModel):
    business_identity: Optional[BusinessIdentity] = None
    reviews: Optional[ReviewSignals] = None


class TlsSignals(AuditModel):
    has_https: Optional[bool] = None
    mixed_content: Optional[bool] = None
    ssl_labs_grade: Optional[str] = None


class SecurityHeaders(AuditModel):
    hsts: Optional[bool] = None
    csp: Optional[bool] = None


class SecuritySignals(AuditModel):
    tls: Optional[TlsSignals] = None
    headers: Optional[SecurityHeaders] = None


class ContentSignals(AuditModel):
    image_count: Optional[int] = None
    hero_image_width: Optional[int] = None
    has_video: Optional[bool] = None
    description_word_count: Optional[int] = None
    has_direct_booking_benefits: Optional[bool] = None
    has_local_area_content: Optional[bool] = None
    review_count: Optional[int] = None
    most_recent_review_date: Optional[str] = None


# ---------------------------------------------------------------------------
# Detector facts
# ---------------------------------------------------------------------------


class BookingEngine(AuditModel):
    name: str
    type: EngineType
    confidence: float = Field(ge=0.0, le=1.0)


class BookingFlowAnalysis(AuditModel):
    has_booking_cta: bool = Field(default=False, alias="hasBookingCTA")
    cta_text: Optional[str] = None
    cta_location: CTALocation = CTALocation.NONE
    booking_engine: Optional[BookingEngine] = None
    has_date_picker: bool = False
    has_guest_selector: bool = False
    has_price_calculator: bool = False
    has_instant_book: bool = False
    estimated_clicks_to_book: int = Field(default=10, ge=0, le=10)
    friction_score: int = Field(default=0, ge=0, le=100)
    recommendations: List[str] = Field(default_factory=list)


class ReviewSource(AuditModel):
    name: str
    type: ReviewSourceType
    is_verified: bool = False


class TrustBadge(AuditModel):
    name: str
    category: BadgeCategory


class SocialProfile(AuditModel):
    platform: str
    detected: bool = False


class TrustSignalAnalysis(AuditModel):
    overall_trust_score: int = Field(default=0, ge=0, le=100)
    has_reviews: bool = False
    review_source: Optional[ReviewSource] = None
    review_count: Optional[int] = None
    average_rating: Optional[float] = None
    rating_out_of: int = 5
    trust_badges: List[TrustBadge] = Field(default_factory=list)
    has_security_badges: bool = False
    has_industry_badges: bool = False
    has_phone_number: bool = False
    has_email_address: bool = False
    has_physical_address: bool = False
    social_profiles: List[SocialProfile] = Field(default_factory=list)
    has_about_page: bool = False
    has_privacy_policy: bool = False
    has_terms_of_service: bool = False
    has_testimonials: bool = False
    has_guest_photos: bool = False
    has_press_logos: bool = False
    recommendations: List[str] = Field(default_factory=list)

    @property
    def detected_social_count(self) -> int:
        return sum(1 for profile in self.social_profiles if profile.detected)


class DetectedSignals(AuditModel):
    """Detector output for the audited home page"""

    booking_flow: Optional[BookingFlowAnalysis] = None
    trust_signals: Optional[TrustSignalAnalysis] = None


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------


class Screenshot(AuditModel):
    url: str
    page_kind: PageKind = PageKind.OTHER
    strategy: Strategy = Strategy.MOBILE


class ReplayMarker(AuditModel):
    timestamp_ms: int
    label: str
    screenshot: Optional[str] = None


class SessionReplay(AuditModel):
    strategy: Strategy
    replay_url: str
    video_url: Optional[str] = None
    duration_ms: int = 0
    started_at: Optional[datetime] = None
    viewport_width: Optional[int] = None
    viewport_height: Optional[int] = None
    markers: Optional[List[ReplayMarker]] = None
    reached_booking: bool = False
    blocked_reason: Optional[str] = None


class AuditArtifacts(AuditModel):
    screenshots: Optional[List[Screenshot]] = None
    session_replays: Optional[List[SessionReplay]] = None
    lighthouse: Optional[List[Dict[str, Any]]] = None
    raw: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class Finding(AuditModel):
    """A single scored, evidenced issue attributed to one category"""

    id: str = Field(min_length=1)
    title: str
    category: ScoreCategory
    severity: Severity
    impact: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    penalty: int = Field(ge=0)
    evidence: List[str] = Field(default_factory=list)
    fix: str = ""
    effort: Effort = Effort.MEDIUM
    tags: List[str] = Field(default_factory=list)


class CategoryScore(AuditModel):
    category: ScoreCategory
    score: int = Field(ge=0, le=100)
    blocker_count: int = Field(default=0, ge=0)
    findings: List[Finding] = Field(default_factory=list)


class EstimatedImpact(AuditModel):
    conversion_loss_percent: float = Field(default=0.0, ge=0.0)
    top_contributors: List[str] = Field(default_factory=list)


class ScoringOutput(AuditModel):
    overall_score: int = Field(ge=0, le=100)
    projected_score: int = Field(ge=0, le=100)
    projected_score_with_product: int = Field(ge=0, le=100)
    estimated_impact: EstimatedImpact = Field(default_factory=EstimatedImpact)
    category_scores: Dict[ScoreCategory, CategoryScore] = Field(default_factory=dict)
    top_issues: List[Finding] = Field(default_factory=list)
    fast_wins: List[Finding] = Field(default_factory=list)
    generated_at: datetime
    version: str


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class NormalizedAudit(AuditModel):
    """Root record of one audit run; ``audit_id`` joins every derived row"""

    audit_id: str
    domain: str
    status: AuditStatus = AuditStatus.PENDING
    generated_at: datetime
    inputs: AuditRequest

    perf: Optional[PerformanceSignals] = None
    crawl: Optional[CrawlSignals] = None
    tech: Optional[TechSignals] = None
    seo: Optional[SeoSignals] = None
    trust: Optional[TrustSignals] = None
    security: Optional[SecuritySignals] = None
    content: Optional[ContentSignals] = None
    detected: Optional[DetectedSignals] = None

    artifacts: Optional[AuditArtifacts] = None
    scoring: Optional[ScoringOutput] = None
    errors: Optional[List[ModuleError]] = None

    @field_validator("audit_id")
    @classmethod
    def validate_audit_id(cls, v):
        if not v or not v.strip():
            raise ValueError("auditId must be a non-empty string")
        return v

    @property
    def booking_flow(self) -> Optional[BookingFlowAnalysis]:
        return self.detected.booking_flow if self.detected else None

    @property
    def trust_analysis(self) -> Optional[TrustSignalAnalysis]:
        return self.detected.trust_signals if self.detected else None


def load_audit(data: Union[str, bytes, Dict[str, Any]]) -> NormalizedAudit:
    """
    Parse and validate a NormalizedAudit from JSON text or a mapping

    Raises:
        ValidationError: if the payload is not a valid audit
    """
    try:
        if isinstance(data, (str, bytes)):
            return NormalizedAudit.model_validate_json(data)
        return NormalizedAudit.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid audit payload",
            errors=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()],
        ) from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"Audit payload is not valid JSON: {e}") from e


def dump_audit(audit: NormalizedAudit) -> Dict[str, Any]:
    """Serialize an audit to its camelCase wire form"""
    return audit.model_dump(mode="json", by_alias=True, exclude_none=True)

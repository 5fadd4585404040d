"""
Performance rules

Core Web Vitals thresholds follow the published "good / needs improvement /
poor" bands; the poor band escalates a finding to major.
"""
from d3_assessment.types import Effort, ScoreCategory, Severity, Strategy

from .base import RuleHit, format_ms, rule

CATEGORY = ScoreCategory.PERFORMANCE

LCP_GOOD_MS = 2500
LCP_POOR_MS = 4000
CLS_GOOD = 0.1
CLS_POOR = 0.25
INP_GOOD_MS = 200
INP_POOR_MS = 500
TBT_GOOD_MS = 300
TBT_POOR_MS = 600
LOW_PERFORMANCE_SCORE = 50
HEAVY_PAGE_BYTES = 3 * 1024 * 1024
THIRD_PARTY_REQUEST_LIMIT = 50


def _mobile(audit):
    if not audit.perf:
        return None
    return audit.perf.by_strategy.get(Strategy.MOBILE)


def _mobile_metric(audit, name):
    result = _mobile(audit)
    return getattr(result.metrics, name) if result else None


def _graded(value, good, poor, label, minor_penalty, major_penalty, minor_impact, major_impact):
    if value is None or value <= good:
        return None
    poor_band = value > poor
    return RuleHit(
        evidence=[label],
        severity=Severity.MAJOR if poor_band else Severity.MINOR,
        penalty=major_penalty if poor_band else minor_penalty,
        impact=major_impact if poor_band else minor_impact,
    )


@rule(
    "slow-mobile-lcp",
    title="Main content loads slowly on mobile",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.MEDIUM,
    impact=0.3,
    confidence=0.9,
    penalty=8,
    fix="Compress and preload the hero image and defer non-critical scripts.",
    tags=("core-web-vitals", "lcp", "mobile"),
)
def slow_mobile_lcp(audit):
    lcp = _mobile_metric(audit, "lcp_ms")
    return _graded(
        lcp, LCP_GOOD_MS, LCP_POOR_MS,
        f"Mobile Largest Contentful Paint is {format_ms(lcp or 0)} (target {format_ms(LCP_GOOD_MS)})",
        minor_penalty=8, major_penalty=20, minor_impact=0.3, major_impact=0.6,
    )


@rule(
    "layout-shift",
    title="Page layout shifts while loading",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.MEDIUM,
    impact=0.2,
    confidence=0.9,
    penalty=5,
    fix="Reserve space for images, embeds and banners with explicit dimensions.",
    tags=("core-web-vitals", "cls", "mobile"),
)
def layout_shift(audit):
    cls = _mobile_metric(audit, "cls")
    return _graded(
        cls, CLS_GOOD, CLS_POOR,
        f"Mobile Cumulative Layout Shift is {(cls or 0):.2f} (target {CLS_GOOD})",
        minor_penalty=5, major_penalty=10, minor_impact=0.2, major_impact=0.4,
    )


@rule(
    "slow-interaction",
    title="Page responds slowly to taps and clicks",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.HIGH,
    impact=0.2,
    confidence=0.8,
    penalty=5,
    fix="Break up long JavaScript tasks and trim heavy event handlers.",
    tags=("core-web-vitals", "inp", "mobile"),
)
def slow_interaction(audit):
    inp = _mobile_metric(audit, "inp_ms")
    return _graded(
        inp, INP_GOOD_MS, INP_POOR_MS,
        f"Mobile Interaction to Next Paint is {format_ms(inp or 0)} (target {format_ms(INP_GOOD_MS)})",
        minor_penalty=5, major_penalty=10, minor_impact=0.2, major_impact=0.4,
    )


@rule(
    "main-thread-blocking",
    title="Scripts block the main thread",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.HIGH,
    impact=0.15,
    confidence=0.8,
    penalty=4,
    fix="Defer or remove unused third-party scripts.",
    tags=("javascript", "mobile"),
)
def main_thread_blocking(audit):
    tbt = _mobile_metric(audit, "tbt_ms")
    return _graded(
        tbt, TBT_GOOD_MS, TBT_POOR_MS,
        f"Mobile Total Blocking Time is {format_ms(tbt or 0)} (target {format_ms(TBT_GOOD_MS)})",
        minor_penalty=4, major_penalty=8, minor_impact=0.15, major_impact=0.3,
    )


@rule(
    "low-mobile-score",
    title="Low mobile performance score",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.HIGH,
    impact=0.5,
    confidence=0.9,
    penalty=15,
    fix="Work through the Lighthouse opportunities, starting with the largest savings.",
    tags=("lighthouse", "mobile"),
)
def low_mobile_score(audit):
    result = _mobile(audit)
    if result is None or result.category_score.performance is None:
        return None
    score = result.category_score.performance * 100
    if score >= LOW_PERFORMANCE_SCORE:
        return None
    evidence = [f"Mobile Lighthouse performance score is {score:.0f}/100"]
    top = sorted(result.opportunities, key=lambda o: -(o.estimated_savings_ms or 0))[:2]
    evidence.extend(f"Opportunity: {o.title}" for o in top)
    return evidence


@rule(
    "heavy-page",
    title="Pages are heavy to download",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.MEDIUM,
    impact=0.2,
    confidence=0.8,
    penalty=6,
    fix="Serve images in modern formats at display size and enable compression.",
    tags=("page-weight",),
)
def heavy_page(audit):
    if not audit.crawl:
        return None
    evidence = [
        f"{page.url} transfers {page.resources.total_bytes / (1024 * 1024):.1f} MB"
        for page in audit.crawl.pages
        if page.resources and page.resources.total_bytes and page.resources.total_bytes > HEAVY_PAGE_BYTES
    ]
    return evidence or None


@rule(
    "third-party-bloat",
    title="Too many third-party requests",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.MEDIUM,
    impact=0.15,
    confidence=0.7,
    penalty=5,
    fix="Audit tags and widgets and remove the ones that are not earning their keep.",
    tags=("third-party",),
)
def third_party_bloat(audit):
    if not audit.crawl:
        return None
    evidence = []
    for page in audit.crawl.pages:
        resources = page.resources
        if resources is None or resources.third_party_requests is None:
            continue
        if resources.third_party_requests > THIRD_PARTY_REQUEST_LIMIT:
            evidence.append(f"{page.url} makes {resources.third_party_requests} third-party requests")
    return evidence or None


@rule(
    "cookie-banner-blocking",
    title="Cookie banner blocks the page",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.LOW,
    impact=0.4,
    confidence=0.7,
    penalty=10,
    fix="Use a non-blocking consent banner that leaves the booking button usable.",
    tags=("ux", "consent"),
)
def cookie_banner_blocking(audit):
    if not audit.crawl:
        return None
    evidence = [
        f"Cookie banner covers the content on {page.url}"
        for page in audit.crawl.pages
        if page.resources and page.resources.has_cookie_banner_blocking_ui
    ]
    return evidence or None

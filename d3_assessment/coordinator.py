"""
Detection Coordinator

Runs the booking-flow and trust-signal detectors over many pages in parallel
and attaches the home page's facts to an audit. Detection is CPU-bound
regex work, so each page runs in a worker thread under a semaphore sized by
``settings.max_concurrent_detections``; pages are independent of each other.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from core.config import settings
from core.logging import get_logger

from .audit_schema import BookingFlowAnalysis, DetectedSignals, NormalizedAudit, TrustSignalAnalysis
from .detectors import BookingFlowDetector, TrustSignalDetector
from .patterns import PatternRegistry, get_pattern_registry
from .types import PageKind

logger = get_logger(__name__, domain="d3")


@dataclass
class PageDetections:
    """Detector output for one page"""

    url: str
    booking_flow: Optional[BookingFlowAnalysis] = None
    trust_signals: Optional[TrustSignalAnalysis] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_signals(self) -> DetectedSignals:
        return DetectedSignals(booking_flow=self.booking_flow, trust_signals=self.trust_signals)


@dataclass
class DetectionResult:
    """Result from a coordinated detection run"""

    pages: Dict[str, PageDetections] = field(default_factory=dict)
    failed_pages: int = 0
    execution_time_ms: int = 0

    @property
    def total_pages(self) -> int:
        return len(self.pages)


class DetectionCoordinator:
    """
    Coordinates parallel detection over the pages of one audit

    A page whose detection fails is recorded with its error; the other pages
    are unaffected.
    """

    def __init__(self, max_concurrent: Optional[int] = None, registry: Optional[PatternRegistry] = None):
        self.max_concurrent = max_concurrent or settings.max_concurrent_detections
        registry = registry or get_pattern_registry()
        self.booking_detector = BookingFlowDetector(registry)
        self.trust_detector = TrustSignalDetector(registry)

    def detect_page(self, url: str, html) -> PageDetections:
        """Run both detectors over one page synchronously"""
        return PageDetections(
            url=url,
            booking_flow=self.booking_detector.detect(html),
            trust_signals=self.trust_detector.detect(html),
        )

    async def detect_pages(self, pages: Dict[str, str]) -> DetectionResult:
        """
        Detect signals on many pages concurrently

        Args:
            pages: Mapping of page URL to rendered HTML

        Returns:
            DetectionResult keyed by URL in input order
        """
        started_at = datetime.now(timezone.utc)
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def detect_single(url: str, html: str) -> PageDetections:
            async with semaphore:
                try:
                    return await asyncio.to_thread(self.detect_page, url, html)
                except Exception as e:
                    logger.error(f"Detection failed for {url}: {e}", extra={"url": url})
                    return PageDetections(url=url, error=str(e))

        detections = await asyncio.gather(*(detect_single(url, html) for url, html in pages.items()))

        result = DetectionResult(pages={d.url: d for d in detections})
        result.failed_pages = sum(1 for d in detections if not d.succeeded)
        elapsed = datetime.now(timezone.utc) - started_at
        result.execution_time_ms = max(1, int(elapsed.total_seconds() * 1000))

        logger.info(
            "Detection completed",
            extra={
                "pages": result.total_pages,
                "failed_pages": result.failed_pages,
                "execution_time_ms": result.execution_time_ms,
            },
        )
        return result

    def run(self, pages: Dict[str, str]) -> DetectionResult:
        """Synchronous entry point for callers without an event loop"""
        return asyncio.run(self.detect_pages(pages))


def find_home_page_url(audit: NormalizedAudit) -> Optional[str]:
    """URL of the audited home page, from the crawl or the request"""
    if audit.crawl:
        for page in audit.crawl.pages:
            if page.kind == PageKind.HOME:
                return page.url
    for target in audit.inputs.pages:
        if target.kind == PageKind.HOME:
            return target.url
    return None


def attach_detections(
    audit: NormalizedAudit,
    html,
    registry: Optional[PatternRegistry] = None,
) -> NormalizedAudit:
    """
    Return a copy of ``audit`` with detector facts for its home page

    Args:
        audit: Audit to enrich; it is not modified
        html: Rendered home page HTML
        registry: Pattern registry, defaults to the configured one
    """
    registry = registry or get_pattern_registry()
    detected = DetectedSignals(
        booking_flow=BookingFlowDetector(registry).detect(html),
        trust_signals=TrustSignalDetector(registry).detect(html),
    )
    logger.debug("Attached detector facts", extra={"audit_id": audit.audit_id})
    return audit.model_copy(update={"detected": detected})

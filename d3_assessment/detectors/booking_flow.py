"""
Booking flow detector

Classifies a page's booking experience: which booking engine powers it, the
strongest booking call-to-action and roughly where it sits, which booking UI
widgets are present, and an estimate of how many clicks and how much friction
stand between a visitor and a confirmed booking.
"""
from typing import List, Optional, Tuple

from core.logging import get_logger
from d3_assessment.audit_schema import BookingEngine, BookingFlowAnalysis
from d3_assessment.patterns import CTAPattern, PatternRegistry, any_match
from d3_assessment.types import CTALocation, EngineType

from .base import BaseDetector

logger = get_logger(__name__, domain="d3")

MAX_CLICKS_TO_BOOK = 10
MAX_FRICTION_SCORE = 100
TARGET_CLICKS_TO_BOOK = 3


def estimate_clicks_to_book(
    has_booking_cta: bool,
    booking_engine: Optional[BookingEngine],
    has_date_picker: bool,
    has_guest_selector: bool,
    has_instant_book: bool,
) -> int:
    """
    Estimate the clicks from landing to a confirmed booking

    Without a CTA the visitor has to hunt for a way to book, which is scored
    as the maximum. Otherwise every missing widget adds steps on top of the
    CTA click and the fixed payment/confirmation steps.
    """
    if not has_booking_cta:
        return MAX_CLICKS_TO_BOOK

    clicks = 1  # the CTA itself

    if booking_engine is not None and booking_engine.type == EngineType.REDIRECT:
        clicks += 1

    # manual date entry costs two, a picker interaction one
    clicks += 1 if has_date_picker else 2

    if not has_guest_selector:
        clicks += 1

    # inquiry flow: submit, wait, confirm
    if not has_instant_book:
        clicks += 2

    clicks += 2  # payment and confirmation

    return min(clicks, MAX_CLICKS_TO_BOOK)


def calculate_friction_score(
    has_booking_cta: bool,
    cta_location: CTALocation,
    booking_engine: Optional[BookingEngine],
    has_date_picker: bool,
    has_instant_book: bool,
    estimated_clicks: int,
) -> int:
    """Friction from 0 (none) to 100 (maximum)"""
    friction = 0

    if not has_booking_cta:
        friction += 40
    elif cta_location == CTALocation.BELOW_FOLD:
        friction += 15

    if booking_engine is None:
        friction += 25
    elif booking_engine.type == EngineType.REDIRECT:
        friction += 10

    if not has_date_picker:
        friction += 10

    if not has_instant_book:
        friction += 15

    if estimated_clicks > 5:
        friction += 15
    elif estimated_clicks > 3:
        friction += 5

    return min(friction, MAX_FRICTION_SCORE)


class BookingFlowDetector(BaseDetector[BookingFlowAnalysis]):
    """Detect booking engines, CTAs and booking friction"""

    name = "booking_flow"

    def analyze(self, html: str) -> BookingFlowAnalysis:
        registry = self.registry

        booking_engine = self.detect_booking_engine(html)
        has_cta, cta_text, cta_location = self.analyze_ctas(html)

        has_date_picker = any_match(registry.date_picker, html)
        has_guest_selector = any_match(registry.guest_selector, html)
        has_price_calculator = any_match(registry.price_calculator, html)
        has_instant_book = any_match(registry.instant_book, html)

        clicks = estimate_clicks_to_book(
            has_booking_cta=has_cta,
            booking_engine=booking_engine,
            has_date_picker=has_date_picker,
            has_guest_selector=has_guest_selector,
            has_instant_book=has_instant_book,
        )
        friction = calculate_friction_score(
            has_booking_cta=has_cta,
            cta_location=cta_location,
            booking_engine=booking_engine,
            has_date_picker=has_date_picker,
            has_instant_book=has_instant_book,
            estimated_clicks=clicks,
        )

        analysis = BookingFlowAnalysis(
            has_booking_cta=has_cta,
            cta_text=cta_text,
            cta_location=cta_location,
            booking_engine=booking_engine,
            has_date_picker=has_date_picker,
            has_guest_selector=has_guest_selector,
            has_price_calculator=has_price_calculator,
            has_instant_book=has_instant_book,
            estimated_clicks_to_book=clicks,
            friction_score=friction,
            recommendations=self._recommendations(
                has_cta, cta_location, booking_engine, has_date_picker, has_instant_book, clicks
            ),
        )

        logger.debug(
            "Booking flow analyzed",
            extra={
                "engine": booking_engine.name if booking_engine else None,
                "cta_text": cta_text,
                "friction_score": friction,
            },
        )
        return analysis

    def detect_booking_engine(self, html: str) -> Optional[BookingEngine]:
        """First engine in table order whose patterns match, else a generic form"""
        for engine in self.registry.engines:
            if engine.matches(html):
                return BookingEngine(name=engine.name, type=engine.type, confidence=engine.confidence)

        generic = self.registry.generic_form
        if generic.matches(html):
            return BookingEngine(name=generic.name, type=generic.type, confidence=generic.confidence)

        return None

    def analyze_ctas(self, html: str) -> Tuple[bool, Optional[str], CTALocation]:
        """
        Pick the highest-priority CTA present in the page

        The table is scanned in order and only a strictly higher priority
        replaces the current best, so equal priorities resolve to the entry
        listed first regardless of where each appears in the document.
        """
        best: Optional[Tuple[CTAPattern, int]] = None

        for cta in self.registry.ctas:
            match = cta.pattern.search(html)
            if match and (best is None or cta.priority > best[0].priority):
                best = (cta, match.start())

        if best is None:
            return False, None, CTALocation.NONE

        cta, position = best
        fold_threshold = len(html) * self.registry.fold_ratio
        location = CTALocation.ABOVE_FOLD if position < fold_threshold else CTALocation.BELOW_FOLD
        return True, cta.text, location

    @staticmethod
    def _recommendations(
        has_cta: bool,
        cta_location: CTALocation,
        booking_engine: Optional[BookingEngine],
        has_date_picker: bool,
        has_instant_book: bool,
        clicks: int,
    ) -> List[str]:
        recommendations = []

        if not has_cta:
            recommendations.append(
                "Add a prominent 'Book Now' button so visitors can immediately see how to book"
            )
        elif cta_location == CTALocation.BELOW_FOLD:
            recommendations.append("Move the booking CTA above the fold so visitors don't have to scroll to book")

        if booking_engine is None:
            recommendations.append("Add an integrated booking widget to capture direct bookings")
        elif booking_engine.type == EngineType.REDIRECT:
            recommendations.append(
                f"Booking redirects to {booking_engine.name}; an embedded widget keeps guests on your site"
            )

        if not has_date_picker:
            recommendations.append("Add a visible date picker so guests can check availability immediately")

        if not has_instant_book and booking_engine is not None:
            recommendations.append(
                "Enable instant booking where possible; inquiry-based bookings are abandoned more often"
            )

        if clicks > TARGET_CLICKS_TO_BOOK:
            recommendations.append(
                f"Reduce booking steps: currently about {clicks} clicks, aim for {TARGET_CLICKS_TO_BOOK} or fewer"
            )

        return recommendations


def analyze_booking_flow(html, registry: Optional[PatternRegistry] = None) -> BookingFlowAnalysis:
    """Analyze a page's booking flow; never raises on malformed HTML"""
    return BookingFlowDetector(registry).detect(html)

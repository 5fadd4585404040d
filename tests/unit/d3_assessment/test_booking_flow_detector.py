"""
Test the booking flow detector

Covers engine detection, CTA selection and fold position, the booking
widgets, and the click and friction estimates.
"""
import pytest

from d3_assessment.audit_schema import BookingEngine
from d3_assessment.detectors import (
    BookingFlowDetector,
    analyze_booking_flow,
    calculate_friction_score,
    estimate_clicks_to_book,
)
from d3_assessment.detectors.booking_flow import MAX_CLICKS_TO_BOOK
from d3_assessment.types import CTALocation, EngineType
from tests.fixtures.pages import BARE_PAGE, BOOKING_PAGE, FILLER

pytestmark = pytest.mark.unit


@pytest.fixture
def detector(pattern_registry):
    return BookingFlowDetector(pattern_registry)


def engine(engine_type: EngineType) -> BookingEngine:
    return BookingEngine(name="Test Engine", type=engine_type, confidence=0.9)


class TestEstimateClicksToBook:
    def test_no_cta_is_maximum(self):
        """Without a CTA the estimate is the maximum"""
        clicks = estimate_clicks_to_book(
            has_booking_cta=False,
            booking_engine=None,
            has_date_picker=True,
            has_guest_selector=True,
            has_instant_book=True,
        )
        assert clicks == MAX_CLICKS_TO_BOOK == 10

    def test_best_case(self):
        """CTA, picker, guest selector and instant booking: CTA + picker + payment + confirmation"""
        clicks = estimate_clicks_to_book(
            has_booking_cta=True,
            booking_engine=engine(EngineType.EMBEDDED),
            has_date_picker=True,
            has_guest_selector=True,
            has_instant_book=True,
        )
        assert clicks == 4

    def test_redirect_engine_without_widgets(self):
        """1 CTA + 1 redirect + 2 manual dates + 1 guests + 2 inquiry + 2 payment"""
        clicks = estimate_clicks_to_book(
            has_booking_cta=True,
            booking_engine=engine(EngineType.REDIRECT),
            has_date_picker=False,
            has_guest_selector=False,
            has_instant_book=False,
        )
        assert clicks == 9


class TestCalculateFrictionScore:
    def test_no_friction(self):
        score = calculate_friction_score(
            has_booking_cta=True,
            cta_location=CTALocation.ABOVE_FOLD,
            booking_engine=engine(EngineType.EMBEDDED),
            has_date_picker=True,
            has_instant_book=True,
            estimated_clicks=3,
        )
        assert score == 0

    def test_below_fold_redirect(self):
        """15 below fold + 10 redirect + 5 for four clicks"""
        score = calculate_friction_score(
            has_booking_cta=True,
            cta_location=CTALocation.BELOW_FOLD,
            booking_engine=engine(EngineType.REDIRECT),
            has_date_picker=True,
            has_instant_book=True,
            estimated_clicks=4,
        )
        assert score == 30

    def test_capped_at_100(self):
        score = calculate_friction_score(
            has_booking_cta=False,
            cta_location=CTALocation.NONE,
            booking_engine=None,
            has_date_picker=False,
            has_instant_book=False,
            estimated_clicks=10,
        )
        assert score == 100


class TestBookingEngineDetection:
    def test_known_engine(self, detector):
        found = detector.detect_booking_engine('<script src="https://widget.lodgify.com/x.js"></script>')
        assert found == BookingEngine(name="Lodgify", type=EngineType.EMBEDDED, confidence=0.9)

    def test_redirect_engine(self, detector):
        found = detector.detect_booking_engine('<iframe src="https://www.airbnb.com/embeddable/home"></iframe>')
        assert found.name == "Airbnb Embed"
        assert found.type == EngineType.REDIRECT

    def test_first_engine_in_table_order_wins(self, detector):
        """A page mentioning two engines resolves to the one listed first"""
        html = '<a href="https://guesty.com">Guesty</a><script src="https://lodgify.com/w.js"></script>'
        assert detector.detect_booking_engine(html).name == "Lodgify"

    def test_generic_booking_form(self, detector):
        found = detector.detect_booking_engine('<form class="booking-form" action="/submit"></form>')
        assert found.name == "Custom Booking Form"
        assert found.type == EngineType.NATIVE
        assert found.confidence == 0.6

    def test_no_engine(self, detector):
        assert detector.detect_booking_engine(BARE_PAGE) is None


class TestCTAAnalysis:
    def test_highest_priority_wins(self, detector):
        """Book Now (100) beats Contact Us (30) wherever they appear"""
        html = "<a>Contact Us</a>" + FILLER + "<a>Book Now</a>"
        has_cta, text, _ = detector.analyze_ctas(html)
        assert has_cta is True
        assert text == "Book Now"

    def test_equal_priority_resolves_to_table_order(self, detector):
        """Instant Book appears first in the page but Book Now is listed first in the table"""
        html = "<button>Instant Book</button>" + FILLER + "<a>Book Now</a>"
        _, text, _ = detector.analyze_ctas(html)
        assert text == "Book Now"

    def test_above_fold(self, detector):
        _, _, location = detector.analyze_ctas("<a>Book Now</a>" + FILLER)
        assert location == CTALocation.ABOVE_FOLD

    def test_below_fold(self, detector):
        _, _, location = detector.analyze_ctas(FILLER + "<a>Book Now</a>")
        assert location == CTALocation.BELOW_FOLD

    def test_no_cta(self, detector):
        assert detector.analyze_ctas(BARE_PAGE) == (False, None, CTALocation.NONE)


class TestBookingFlowDetector:
    def test_booking_page(self, detector):
        """Lodgify page with picker and guest selector but no instant booking"""
        analysis = detector.detect(BOOKING_PAGE)

        assert analysis.has_booking_cta is True
        assert analysis.cta_text == "Book Now"
        assert analysis.cta_location == CTALocation.ABOVE_FOLD
        assert analysis.booking_engine.name == "Lodgify"
        assert analysis.has_date_picker is True
        assert analysis.has_guest_selector is True
        assert analysis.has_price_calculator is False
        assert analysis.has_instant_book is False
        # 1 CTA + 1 picker + 2 inquiry + 2 payment
        assert analysis.estimated_clicks_to_book == 6
        # 15 no instant booking + 15 for more than five clicks
        assert analysis.friction_score == 30
        assert any("instant booking" in r for r in analysis.recommendations)
        assert any("Reduce booking steps" in r for r in analysis.recommendations)

    def test_bare_page(self, detector):
        analysis = detector.detect(BARE_PAGE)

        assert analysis.has_booking_cta is False
        assert analysis.cta_text is None
        assert analysis.cta_location == CTALocation.NONE
        assert analysis.booking_engine is None
        assert analysis.estimated_clicks_to_book == 10
        assert analysis.friction_score == 100
        assert analysis.recommendations[0].startswith("Add a prominent 'Book Now' button")

    @pytest.mark.parametrize("html", [None, 42, "", b""])
    def test_non_string_input_is_empty_document(self, detector, html):
        """Detection never raises on odd input"""
        analysis = detector.detect(html)
        assert analysis.has_booking_cta is False
        assert analysis.estimated_clicks_to_book == 10

    def test_bytes_input_decoded(self, detector):
        analysis = detector.detect(BOOKING_PAGE.encode("utf-8"))
        assert analysis.cta_text == "Book Now"

    def test_instant_book_detected(self, detector):
        analysis = detector.detect("<a>Book Now</a><p>Book instantly with no waiting</p>" + FILLER)
        assert analysis.has_instant_book is True

    def test_is_deterministic(self, detector):
        assert detector.detect(BOOKING_PAGE) == detector.detect(BOOKING_PAGE)

    def test_module_helper(self, pattern_registry):
        assert analyze_booking_flow(BOOKING_PAGE, pattern_registry).booking_engine.name == "Lodgify"

"""
Conversion rules

Booking-path findings from the booking-flow detector and the crawler's
conversion observations.
"""
from d3_assessment.types import CTALocation, Effort, EngineType, PageKind, ScoreCategory, Severity

from .base import known_false, rule

CATEGORY = ScoreCategory.CONVERSION
MAX_REASONABLE_CLICKS = 5
MAX_CLICK_DEPTH = 3


def _home_page_ctas(audit):
    """CTAs the crawler saw on the home page, or None when unknown"""
    if not audit.crawl:
        return None
    for page in audit.crawl.pages:
        if page.kind == PageKind.HOME:
            return page.detected_ctas
    return None


def _conversion(audit):
    return audit.crawl.conversion_elements if audit.crawl else None


@rule(
    "no-booking-cta",
    title="No booking call-to-action on the home page",
    category=CATEGORY,
    severity=Severity.BLOCKER,
    effort=Effort.LOW,
    impact=0.9,
    confidence=0.8,
    penalty=30,
    fix="Add a prominent 'Book Now' button to the top of the home page.",
    tags=("booking", "cta"),
)
def no_booking_cta(audit):
    flow = audit.booking_flow
    if flow is not None:
        if flow.has_booking_cta:
            return None
        return [
            "No booking call-to-action text found in the home page HTML",
            f"Estimated clicks to book: {flow.estimated_clicks_to_book}",
        ]

    ctas = _home_page_ctas(audit)
    if ctas is not None and not ctas:
        return ["Crawler found no call-to-action buttons on the home page"]
    return None


@rule(
    "cta-below-fold",
    title="Booking call-to-action is below the fold",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.LOW,
    impact=0.5,
    confidence=0.6,
    penalty=12,
    fix="Move the primary booking button into the first screen of the page.",
    tags=("booking", "cta"),
)
def cta_below_fold(audit):
    flow = audit.booking_flow
    if flow is None or not flow.has_booking_cta or flow.cta_location != CTALocation.BELOW_FOLD:
        return None
    return [f"Strongest booking CTA '{flow.cta_text}' appears below the fold"]


@rule(
    "no-booking-engine",
    title="No online booking engine detected",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.HIGH,
    impact=0.6,
    confidence=0.7,
    penalty=15,
    fix="Integrate a booking engine so guests can book directly on the site.",
    tags=("booking", "engine"),
)
def no_booking_engine(audit):
    flow = audit.booking_flow
    if flow is None or flow.booking_engine is not None:
        return None
    if audit.tech and audit.tech.booking_engine and audit.tech.booking_engine.provider:
        return None
    return ["No known booking engine or booking form found in the page"]


@rule(
    "redirect-booking-engine",
    title="Booking redirects guests off the site",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.HIGH,
    impact=0.35,
    confidence=0.7,
    penalty=8,
    fix="Switch to an embedded booking widget so guests stay on the site.",
    tags=("booking", "engine"),
)
def redirect_booking_engine(audit):
    flow = audit.booking_flow
    if flow is None or flow.booking_engine is None or flow.booking_engine.type != EngineType.REDIRECT:
        return None
    return [f"Booking engine {flow.booking_engine.name} sends guests to an external site"]


@rule(
    "no-date-picker",
    title="No date picker for checking availability",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.MEDIUM,
    impact=0.45,
    confidence=0.6,
    penalty=10,
    fix="Add a check-in / check-out date picker near the booking button.",
    tags=("booking", "ux"),
)
def no_date_picker(audit):
    flow = audit.booking_flow
    if flow is None or flow.has_date_picker:
        return None
    return ["No date picker widget found in the page"]


@rule(
    "inquiry-only-booking",
    title="Guests can only request to book",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.MEDIUM,
    impact=0.4,
    confidence=0.6,
    penalty=10,
    fix="Enable instant booking so guests get confirmation without waiting.",
    tags=("booking",),
)
def inquiry_only_booking(audit):
    conversion = _conversion(audit)
    if conversion is not None and conversion.supports_instant_booking is False:
        return ["Crawler could not complete an instant booking"]

    flow = audit.booking_flow
    if flow is not None and flow.booking_engine is not None and not flow.has_instant_book:
        return [f"{flow.booking_engine.name} is configured without instant booking"]
    return None


@rule(
    "too-many-clicks",
    title="Too many steps to complete a booking",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.MEDIUM,
    impact=0.5,
    confidence=0.6,
    penalty=10,
    fix="Shorten the booking path to three clicks or fewer.",
    tags=("booking", "friction"),
)
def too_many_clicks(audit):
    evidence = []
    flow = audit.booking_flow
    if flow is not None and flow.has_booking_cta and flow.estimated_clicks_to_book > MAX_REASONABLE_CLICKS:
        evidence.append(
            f"Estimated {flow.estimated_clicks_to_book} clicks to book (friction score {flow.friction_score})"
        )

    path = audit.crawl.booking_path if audit.crawl else None
    if path is not None and path.click_depth_from_home is not None and path.click_depth_from_home > MAX_CLICK_DEPTH:
        evidence.append(f"Booking page is {path.click_depth_from_home} clicks from the home page")

    return evidence or None


@rule(
    "booking-leaves-domain",
    title="Booking completes on another domain",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.HIGH,
    impact=0.3,
    confidence=0.7,
    penalty=6,
    fix="Host the checkout on your own domain or a white-labelled subdomain.",
    tags=("booking", "trust"),
)
def booking_leaves_domain(audit):
    path = audit.crawl.booking_path if audit.crawl else None
    if path is not None and path.cross_domain:
        host = path.cross_domain_host or "an external domain"
        return [f"Booking path moves to {host}"]

    engine = audit.tech.booking_engine if audit.tech else None
    if engine is not None and engine.separate_domain:
        return [f"Booking engine {engine.provider or 'provider'} runs on a separate domain"]
    return None


@rule(
    "account-required",
    title="Guests must create an account to book",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.MEDIUM,
    impact=0.5,
    confidence=0.8,
    penalty=12,
    fix="Offer guest checkout without account creation.",
    tags=("booking", "friction"),
)
def account_required(audit):
    conversion = _conversion(audit)
    if conversion is None or not conversion.requires_account_creation:
        return None
    return ["Checkout requires creating an account"]


@rule(
    "fees-hidden",
    title="Fees are hidden until checkout",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.LOW,
    impact=0.45,
    confidence=0.7,
    penalty=10,
    fix="Show the full price including cleaning and service fees before checkout.",
    tags=("booking", "pricing"),
)
def fees_hidden(audit):
    conversion = _conversion(audit)
    if conversion is None or conversion.shows_fees_before_checkout is not False:
        return None
    evidence = ["Total fees are not shown before the checkout step"]
    flow = audit.booking_flow
    if flow is not None and not flow.has_price_calculator:
        evidence.append("No price breakdown or calculator found on the page")
    return evidence


@rule(
    "cancellation-hidden",
    title="Cancellation policy is hidden until checkout",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.3,
    confidence=0.7,
    penalty=6,
    fix="State the cancellation policy next to the booking button.",
    tags=("booking", "policy"),
)
def cancellation_hidden(audit):
    conversion = _conversion(audit)
    if conversion is None or conversion.shows_cancellation_before_checkout is not False:
        return None
    return ["Cancellation terms are not shown before checkout"]


@rule(
    "no-sticky-mobile-cta",
    title="No persistent booking button on mobile",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.3,
    confidence=0.7,
    penalty=6,
    fix="Add a sticky 'Book Now' bar on mobile layouts.",
    tags=("booking", "mobile"),
)
def no_sticky_mobile_cta(audit):
    conversion = _conversion(audit)
    if conversion is None or conversion.has_persistent_booking_cta_on_mobile is not False:
        return None
    return ["Booking button scrolls out of view on mobile"]


@rule(
    "no-inquiry-fallback",
    title="No inquiry option for undecided guests",
    category=CATEGORY,
    severity=Severity.TRIVIAL,
    effort=Effort.LOW,
    impact=0.1,
    confidence=0.6,
    penalty=2,
    fix="Add a short inquiry form for guests with questions before booking.",
    tags=("booking", "lead-capture"),
)
def no_inquiry_fallback(audit):
    conversion = _conversion(audit)
    if conversion is None or not known_false(conversion.has_inquiry_fallback):
        return None
    return ["No inquiry or contact form offered alongside booking"]

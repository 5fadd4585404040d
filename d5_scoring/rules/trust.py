"""
Trust rules

Combine the trust-signal detector's findings with the crawler's business
identity and review observations. A fact counts as missing only when at
least one source reported on it and none found it.
"""
from d3_assessment.types import BadgeCategory, Effort, ScoreCategory, Severity

from .base import first_known, known_false, rule

CATEGORY = ScoreCategory.TRUST
GOOD_RATING = 4.0
MIN_REVIEW_COUNT = 10


def _reviews(audit):
    return audit.trust.reviews if audit.trust else None


def _identity(audit):
    return audit.trust.business_identity if audit.trust else None


def _crawl_flag(audit, section, name):
    """True/False from crawled pages, None when no page reported the section"""
    if not audit.crawl:
        return None
    values = [getattr(getattr(page, section), name) for page in audit.crawl.pages if getattr(page, section)]
    if not values:
        return None
    return any(values)


def _review_presence(audit):
    analysis = audit.trust_analysis
    reviews = _reviews(audit)
    return (
        analysis.has_reviews if analysis else None,
        reviews.on_site.present if reviews and reviews.on_site else None,
        reviews.google.present if reviews and reviews.google else None,
        _crawl_flag(audit, "trust_elements", "has_reviews_section"),
    )


def _rating(audit):
    analysis = audit.trust_analysis
    reviews = _reviews(audit)
    return first_known(
        reviews.google.rating if reviews and reviews.google else None,
        analysis.average_rating if analysis else None,
    )


def _review_count(audit):
    analysis = audit.trust_analysis
    reviews = _reviews(audit)
    counts = [
        analysis.review_count if analysis else None,
        reviews.google.count if reviews and reviews.google else None,
        reviews.on_site.count_hint if reviews and reviews.on_site else None,
        audit.content.review_count if audit.content else None,
    ]
    known = [c for c in counts if c is not None]
    return max(known) if known else None


@rule(
    "no-reviews",
    title="No guest reviews anywhere on the site",
    category=CATEGORY,
    severity=Severity.BLOCKER,
    effort=Effort.MEDIUM,
    impact=0.8,
    confidence=0.7,
    penalty=25,
    fix="Embed recent guest reviews, ideally from Google, Airbnb or VRBO.",
    tags=("reviews", "social-proof"),
)
def no_reviews(audit):
    if not known_false(*_review_presence(audit)):
        return None
    return ["No reviews, ratings or review widgets found"]


@rule(
    "weak-rating",
    title="Average rating is below 4 stars",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.HIGH,
    impact=0.4,
    confidence=0.6,
    penalty=10,
    fix="Address recurring complaints and invite satisfied guests to review.",
    tags=("reviews",),
)
def weak_rating(audit):
    rating = _rating(audit)
    if rating is None or rating >= GOOD_RATING:
        return None
    return [f"Displayed average rating is {rating:g}"]


@rule(
    "few-reviews",
    title="Only a handful of reviews",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.MEDIUM,
    impact=0.25,
    confidence=0.6,
    penalty=6,
    fix="Ask every departing guest for a review.",
    tags=("reviews",),
)
def few_reviews(audit):
    count = _review_count(audit)
    if count is None or count >= MIN_REVIEW_COUNT:
        return None
    return [f"Only {count} reviews found"]


@rule(
    "unverified-reviews",
    title="Reviews are not from a verified platform",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.2,
    confidence=0.6,
    penalty=5,
    fix="Embed a Google, Airbnb or VRBO review widget instead of self-hosted quotes.",
    tags=("reviews",),
)
def unverified_reviews(audit):
    analysis = audit.trust_analysis
    if analysis is None or not analysis.has_reviews:
        return None
    if analysis.review_source is not None and analysis.review_source.is_verified:
        return None
    reviews = _reviews(audit)
    if reviews and reviews.google and reviews.google.present:
        return None
    source = analysis.review_source.name if analysis.review_source else "unknown source"
    return [f"Reviews come from {source}"]


@rule(
    "no-trust-badges",
    title="No trust or credential badges",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.2,
    confidence=0.6,
    penalty=6,
    fix="Show Superhost, association or secure-payment badges near the booking button.",
    tags=("badges",),
)
def no_trust_badges(audit):
    analysis = audit.trust_analysis
    if analysis is None or analysis.has_security_badges or analysis.has_industry_badges:
        return None
    if _crawl_flag(audit, "trust_elements", "has_third_party_review_badges"):
        return None
    evidence = ["No security or industry badges found"]
    payment = [b.name for b in analysis.trust_badges if b.category == BadgeCategory.PAYMENT]
    if payment:
        evidence.append(f"Only payment badges present: {', '.join(payment)}")
    return evidence


@rule(
    "missing-phone",
    title="No visible phone number",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.LOW,
    impact=0.35,
    confidence=0.7,
    penalty=10,
    fix="Put a click-to-call phone number in the header and footer.",
    tags=("contact",),
)
def missing_phone(audit):
    analysis = audit.trust_analysis
    identity = _identity(audit)
    if not known_false(
        analysis.has_phone_number if analysis else None,
        identity.has_phone if identity else None,
        _crawl_flag(audit, "contacts", "has_phone"),
    ):
        return None
    return ["No phone number or tel: link found"]


@rule(
    "missing-address",
    title="No physical address or location",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.2,
    confidence=0.6,
    penalty=6,
    fix="Show the business address or general property location.",
    tags=("contact",),
)
def missing_address(audit):
    analysis = audit.trust_analysis
    identity = _identity(audit)
    if not known_false(
        analysis.has_physical_address if analysis else None,
        identity.has_address if identity else None,
        _crawl_flag(audit, "contacts", "has_address"),
    ):
        return None
    return ["No street address or location details found"]


@rule(
    "no-social-profiles",
    title="No links to social profiles",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.1,
    confidence=0.7,
    penalty=4,
    fix="Link active Facebook and Instagram profiles from the footer.",
    tags=("social",),
)
def no_social_profiles(audit):
    analysis = audit.trust_analysis
    if analysis is None or not analysis.social_profiles or analysis.detected_social_count > 0:
        return None
    return ["None of the major social platforms are linked"]


@rule(
    "no-testimonials",
    title="No guest testimonials",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.15,
    confidence=0.6,
    penalty=4,
    fix="Feature a few short guest quotes with names and stay dates.",
    tags=("social-proof",),
)
def no_testimonials(audit):
    analysis = audit.trust_analysis
    if not known_false(
        analysis.has_testimonials if analysis else None,
        _crawl_flag(audit, "trust_elements", "has_social_proof_mentions"),
    ):
        return None
    return ["No testimonials or guest quotes found"]


@rule(
    "no-privacy-policy",
    title="No privacy policy",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.LOW,
    impact=0.2,
    confidence=0.8,
    penalty=8,
    fix="Publish a privacy policy and link it from every page footer.",
    tags=("legal",),
)
def no_privacy_policy(audit):
    analysis = audit.trust_analysis
    if not known_false(
        analysis.has_privacy_policy if analysis else None,
        _crawl_flag(audit, "policies", "has_privacy_policy"),
    ):
        return None
    return ["No privacy policy link found"]


@rule(
    "no-terms",
    title="No terms and conditions",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.1,
    confidence=0.7,
    penalty=4,
    fix="Publish booking terms and conditions and link them near checkout.",
    tags=("legal",),
)
def no_terms(audit):
    analysis = audit.trust_analysis
    if not known_false(
        analysis.has_terms_of_service if analysis else None,
        _crawl_flag(audit, "policies", "has_terms"),
    ):
        return None
    return ["No terms of service or terms and conditions link found"]

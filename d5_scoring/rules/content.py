"""
Content rules

Listing-quality findings: photos, video, description depth, local content
and how fresh the displayed reviews are.
"""
from datetime import datetime, timezone

from d3_assessment.types import Effort, ScoreCategory, Severity

from .base import rule

CATEGORY = ScoreCategory.CONTENT
MIN_IMAGES = 10
MIN_HERO_WIDTH = 1200
MIN_DESCRIPTION_WORDS = 150
STALE_REVIEW_DAYS = 180


def _content(audit):
    return audit.content


def _parse_date(value):
    """Parse an ISO date or timestamp; None when unparsable"""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@rule(
    "few-images",
    title="Too few property photos",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.MEDIUM,
    impact=0.4,
    confidence=0.7,
    penalty=15,
    fix="Publish at least 20 professional photos covering every room and the view.",
    tags=("photos",),
)
def few_images(audit):
    content = _content(audit)
    if content is None or content.image_count is None or content.image_count >= MIN_IMAGES:
        return None
    return [f"Only {content.image_count} images found (aim for {MIN_IMAGES}+)"]


@rule(
    "small-hero-image",
    title="Hero image is low resolution",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.2,
    confidence=0.7,
    penalty=8,
    fix="Use a hero image at least 1200px wide, served responsively.",
    tags=("photos",),
)
def small_hero_image(audit):
    content = _content(audit)
    if content is None or content.hero_image_width is None or content.hero_image_width >= MIN_HERO_WIDTH:
        return None
    return [f"Hero image is {content.hero_image_width}px wide"]


@rule(
    "no-video",
    title="No video tour",
    category=CATEGORY,
    severity=Severity.TRIVIAL,
    effort=Effort.MEDIUM,
    impact=0.1,
    confidence=0.7,
    penalty=3,
    fix="Add a short walkthrough video of the property.",
    tags=("video",),
)
def no_video(audit):
    content = _content(audit)
    if content is None or content.has_video is not False:
        return None
    return ["No embedded video found"]


@rule(
    "thin-description",
    title="Property description is thin",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.LOW,
    impact=0.3,
    confidence=0.7,
    penalty=12,
    fix="Expand the description with amenities, sleeping arrangements and what makes the stay special.",
    tags=("copy",),
)
def thin_description(audit):
    content = _content(audit)
    words = content.description_word_count if content else None
    if words is None or words >= MIN_DESCRIPTION_WORDS:
        return None
    return [f"Description has {words} words (aim for {MIN_DESCRIPTION_WORDS}+)"]


@rule(
    "no-direct-booking-benefits",
    title="No reason given to book direct",
    category=CATEGORY,
    severity=Severity.MAJOR,
    effort=Effort.LOW,
    impact=0.35,
    confidence=0.6,
    penalty=12,
    fix="Call out direct-booking perks such as no service fees, best-rate guarantee or flexible check-in.",
    tags=("copy", "direct-booking"),
)
def no_direct_booking_benefits(audit):
    content = _content(audit)
    if content is None or content.has_direct_booking_benefits is not False:
        return None
    return ["No direct-booking benefits mentioned"]


@rule(
    "no-local-area-content",
    title="No local area guide",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.MEDIUM,
    impact=0.15,
    confidence=0.6,
    penalty=6,
    fix="Add a local guide with restaurants, activities and distances.",
    tags=("copy", "seo"),
)
def no_local_area_content(audit):
    content = _content(audit)
    if content is None or content.has_local_area_content is not False:
        return None
    return ["No local area or neighbourhood content found"]


@rule(
    "stale-reviews",
    title="Most recent review is old",
    category=CATEGORY,
    severity=Severity.MINOR,
    effort=Effort.LOW,
    impact=0.15,
    confidence=0.6,
    penalty=5,
    fix="Refresh the review feed or add recent guest reviews.",
    tags=("reviews", "freshness"),
)
def stale_reviews(audit):
    content = _content(audit)
    latest = _parse_date(content.most_recent_review_date) if content else None
    if latest is None:
        return None
    generated_at = audit.generated_at
    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=timezone.utc)
    age_days = (generated_at - latest).days
    if age_days <= STALE_REVIEW_DAYS:
        return None
    return [f"Most recent review is {age_days} days old"]

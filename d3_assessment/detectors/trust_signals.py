"""
Trust signal detector

Finds reviews and ratings, trust badges, contact details, social profiles,
social proof and legal pages in a page's HTML, and rolls them into a 0-100
trust score with remediation hints.
"""
import json
import math
import re
import sys
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from bs4 import BeautifulSoup

from core.logging import get_logger
from d3_assessment.audit_schema import ReviewSource, SocialProfile, TrustBadge, TrustSignalAnalysis
from d3_assessment.patterns import PatternRegistry, ReviewSourcePattern, any_match
from d3_assessment.types import BadgeCategory, ReviewSourceType

from .base import BaseDetector

logger = get_logger(__name__, domain="d3")

MAX_TRUST_SCORE = 100
RATING_SCALE = 5
FEW_REVIEWS_THRESHOLD = 10
HIGHLIGHT_RATING = 4.5
MAX_FLOAT = sys.float_info.max
# longer digit runs are not review counts (and exceed int() string limits)
MAX_COUNT_DIGITS = 18
MAX_COUNT = 10**MAX_COUNT_DIGITS

_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)")


def _leading_int(value: Any) -> Optional[int]:
    """Leading integer of a number or numeric string; zero and garbage give None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if abs(value) >= MAX_COUNT or not math.isfinite(value):
            return None
        return int(value) or None
    match = _LEADING_INT.match(str(value)) if value is not None else None
    if not match or len(match.group(1).lstrip("+-")) > MAX_COUNT_DIGITS:
        return None
    return int(match.group(1)) or None


def _leading_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int) and abs(value) > MAX_FLOAT:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) and value else None
    match = _LEADING_FLOAT.match(str(value)) if value is not None else None
    if not match:
        return None
    number = float(match.group(1))
    return number if math.isfinite(number) and number else None


@dataclass(frozen=True)
class ReviewFacts:
    has_reviews: bool = False
    source: Optional[ReviewSource] = None
    review_count: Optional[int] = None
    average_rating: Optional[float] = None


def calculate_trust_score(
    has_reviews: bool,
    average_rating: Optional[float],
    review_count: Optional[int],
    badge_count: int,
    has_phone: bool,
    has_email: bool,
    has_address: bool,
    social_count: int,
    has_testimonials: bool,
    has_privacy_policy: bool,
    has_terms: bool,
) -> int:
    """
    Roll trust facts into a 0-100 score

    Reviews are worth up to 35 points, badges 20, contact details 20, social
    presence 10, testimonials 5 and legal pages 10.
    """
    score = 0

    if has_reviews:
        score += 15
        if average_rating and average_rating >= 4.0:
            score += 10
        if review_count and review_count >= 10:
            score += 10

    score += min(badge_count * 5, 20)

    if has_phone:
        score += 8
    if has_email:
        score += 6
    if has_address:
        score += 6

    score += min(social_count * 3, 10)

    if has_testimonials:
        score += 5

    if has_privacy_policy:
        score += 5
    if has_terms:
        score += 5

    return max(0, min(score, MAX_TRUST_SCORE))


def _is_ld_json(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower().startswith("application/ld+json")


def _iter_schema_nodes(data: Any) -> Iterable[dict]:
    """Top-level JSON-LD nodes, including list items and @graph members, in document order"""
    stack = [data]
    while stack:
        item = stack.pop()
        if isinstance(item, list):
            stack.extend(reversed(item))
        elif isinstance(item, dict):
            yield item
            graph = item.get("@graph")
            if isinstance(graph, list):
                stack.append(graph)


class TrustSignalDetector(BaseDetector[TrustSignalAnalysis]):
    """Detect reviews, badges and credibility indicators"""

    name = "trust_signals"

    def analyze(self, html: str) -> TrustSignalAnalysis:
        registry = self.registry

        reviews = self.analyze_reviews(html)
        badges = self.detect_badges(html)
        has_security_badges = any(b.category == BadgeCategory.SECURITY for b in badges)
        has_industry_badges = any(b.category == BadgeCategory.INDUSTRY for b in badges)

        has_phone = any_match(registry.phone, html)
        has_email = any_match(registry.email, html)
        has_address = any_match(registry.address, html)

        social_profiles = [
            SocialProfile(platform=p.platform, detected=any_match(p.patterns, html))
            for p in registry.social_platforms
        ]
        social_count = sum(1 for p in social_profiles if p.detected)

        has_testimonials = any_match(registry.testimonials, html)
        has_guest_photos = any_match(registry.guest_photos, html)
        has_press_logos = any_match(registry.press_logos, html)

        has_privacy_policy = any_match(registry.privacy_policy, html)
        has_terms = any_match(registry.terms_of_service, html)
        has_about_page = any_match(registry.about_page, html)

        score = calculate_trust_score(
            has_reviews=reviews.has_reviews,
            average_rating=reviews.average_rating,
            review_count=reviews.review_count,
            badge_count=len(badges),
            has_phone=has_phone,
            has_email=has_email,
            has_address=has_address,
            social_count=social_count,
            has_testimonials=has_testimonials,
            has_privacy_policy=has_privacy_policy,
            has_terms=has_terms,
        )

        recommendations = []
        if not reviews.has_reviews:
            recommendations.append("Add guest reviews to the site; most travelers read reviews before booking")
        elif reviews.review_count and reviews.review_count < FEW_REVIEWS_THRESHOLD:
            recommendations.append(
                f"Only {reviews.review_count} reviews found; encourage more guests to leave feedback"
            )

        if reviews.source is None or not reviews.source.is_verified:
            recommendations.append("Display verified reviews from Google, Airbnb or VRBO to build credibility")

        if not has_phone:
            recommendations.append("Add a visible phone number so guests know they can reach you")

        if not has_address:
            recommendations.append("Show your general location or business address for transparency")

        if social_count == 0:
            recommendations.append("Link your social media profiles to show an active, real business")

        if not has_security_badges and not has_industry_badges:
            recommendations.append(
                "Add trust badges (Superhost, verified host, secure payment) to reduce booking anxiety"
            )

        if not has_privacy_policy:
            recommendations.append("Add a privacy policy link; it is legally required and builds trust")

        if reviews.average_rating and reviews.average_rating >= HIGHLIGHT_RATING:
            recommendations.append(
                f"Great {reviews.average_rating:g} rating! Feature it prominently in the hero section"
            )

        logger.debug(
            "Trust signals analyzed",
            extra={"trust_score": score, "badges": len(badges), "has_reviews": reviews.has_reviews},
        )

        return TrustSignalAnalysis(
            overall_trust_score=score,
            has_reviews=reviews.has_reviews,
            review_source=reviews.source,
            review_count=reviews.review_count,
            average_rating=reviews.average_rating,
            rating_out_of=RATING_SCALE,
            trust_badges=badges,
            has_security_badges=has_security_badges,
            has_industry_badges=has_industry_badges,
            has_phone_number=has_phone,
            has_email_address=has_email,
            has_physical_address=has_address,
            social_profiles=social_profiles,
            has_about_page=has_about_page,
            has_privacy_policy=has_privacy_policy,
            has_terms_of_service=has_terms,
            has_testimonials=has_testimonials,
            has_guest_photos=has_guest_photos,
            has_press_logos=has_press_logos,
            recommendations=recommendations,
        )

    def analyze_reviews(self, html: str) -> ReviewFacts:
        """
        Resolve review facts from the most reliable evidence available

        Structured data wins over known review platforms, which win over
        generic rating text.
        """
        structured = self._structured_rating(html)
        if structured is not None:
            return structured

        for source in self.registry.review_sources:
            if source.matches(html):
                return self._platform_reviews(source, html)

        generic = self.registry.generic_reviews
        if generic.matches(html):
            return self._platform_reviews(generic, html)

        return ReviewFacts()

    def _structured_rating(self, html: str) -> Optional[ReviewFacts]:
        if "ld+json" not in html.lower():
            return None

        soup = BeautifulSoup(html, "html.parser")
        for script in soup.find_all("script", attrs={"type": _is_ld_json}):
            try:
                data = json.loads(script.string or "")
            except (ValueError, TypeError, RecursionError):
                # malformed, or numbers and nesting beyond what the decoder accepts
                continue

            for node in _iter_schema_nodes(data):
                rating = node.get("aggregateRating")
                if not rating:
                    continue
                if not isinstance(rating, dict):
                    rating = {}
                return ReviewFacts(
                    has_reviews=True,
                    source=ReviewSource(
                        name=self.registry.aggregate_source_name,
                        type=ReviewSourceType.AGGREGATE,
                        is_verified=True,
                    ),
                    review_count=_leading_int(rating.get("reviewCount")),
                    average_rating=_leading_float(rating.get("ratingValue")),
                )
        return None

    @staticmethod
    def _platform_reviews(source: ReviewSourcePattern, html: str) -> ReviewFacts:
        rating = None
        count = None

        if source.rating_pattern is not None:
            match = source.rating_pattern.search(html)
            if match:
                rating = _leading_float(match.group(1))

        if source.count_pattern is not None:
            match = source.count_pattern.search(html)
            if match:
                count = _leading_int(match.group(1))

        return ReviewFacts(
            has_reviews=True,
            source=ReviewSource(name=source.name, type=source.type, is_verified=source.verified),
            review_count=count,
            average_rating=rating,
        )

    def detect_badges(self, html: str) -> List[TrustBadge]:
        """Every badge whose patterns match, in table order"""
        return [
            TrustBadge(name=badge.name, category=badge.category)
            for badge in self.registry.badges
            if any_match(badge.patterns, html)
        ]


def analyze_trust_signals(html, registry: Optional[PatternRegistry] = None) -> TrustSignalAnalysis:
    """Analyze a page's trust signals; never raises on malformed HTML"""
    return TrustSignalDetector(registry).detect(html)

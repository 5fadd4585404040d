"""
Overall scorer

Blends category scores into the overall score with the configured weights,
and projects the score a site would reach once its fixable findings are
addressed:

    overall <= projected <= projected_with_product <= 100
"""
from typing import Dict, Mapping, Optional, Tuple

from core.logging import get_logger
from core.utils import round_half_up
from d3_assessment.audit_schema import CategoryScore
from d3_assessment.types import ScoreCategory

from .category_scorer import penalty_score
from .constants import MAX_SCORE
from .rules_schema import ScoringConfig, get_scoring_config

logger = get_logger(__name__, domain="d5")


def _to_int(value: float) -> int:
    # float noise (79.49999999) must not flip a half-up rounding
    return int(round_half_up(round(value, 6)))


def weighted_score(scores: Mapping[ScoreCategory, float], weights: Mapping[ScoreCategory, float]) -> float:
    """Weighted sum of per-category scores; a missing category counts as 100"""
    return sum(weight * scores.get(category, MAX_SCORE) for category, weight in weights.items())


def calculate_overall_score(
    category_scores: Mapping[ScoreCategory, CategoryScore], config: Optional[ScoringConfig] = None
) -> int:
    """Overall 0-100 score, rounded half up"""
    config = config or get_scoring_config()
    scores = {category: cs.score for category, cs in category_scores.items()}
    return _to_int(weighted_score(scores, config.category_weights))


def calculate_projected_scores(
    category_scores: Mapping[ScoreCategory, CategoryScore],
    config: Optional[ScoringConfig] = None,
    overall_score: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Projected scores after remediation

    Every category is re-scored keeping only the penalties of findings whose
    effort is not fixable. The result is capped at
    ``projection.max_projected_score`` but never drops below the overall
    score; the product uplift is added on top and capped at 100.

    Returns:
        (projected_score, projected_score_with_product)
    """
    config = config or get_scoring_config()
    projection = config.projection
    fixable = set(projection.fixable_efforts)

    if overall_score is None:
        overall_score = calculate_overall_score(category_scores, config)

    residual: Dict[ScoreCategory, float] = {
        category: penalty_score(cs.findings, counts=lambda f: f.effort not in fixable)
        for category, cs in category_scores.items()
    }
    projected = _to_int(weighted_score(residual, config.category_weights))
    projected = max(min(projected, projection.max_projected_score), overall_score)

    with_product = min(projected + projection.product_uplift, MAX_SCORE)
    with_product = max(with_product, projected)

    logger.debug(
        "Projected scores calculated",
        extra={"overall_score": overall_score, "projected_score": projected, "with_product": with_product},
    )
    return projected, with_product

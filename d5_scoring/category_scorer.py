"""
Category scorer

Groups findings by category and turns each group into a 0-100 score by
subtracting penalties from 100. All six categories are always present; a
category without findings scores exactly 100.
"""
from typing import Callable, Dict, Iterable, List, Optional

from core.utils import clamp
from d3_assessment.audit_schema import CategoryScore, Finding
from d3_assessment.types import ScoreCategory, Severity

from .constants import MAX_SCORE, MIN_SCORE


def penalty_score(findings: Iterable[Finding], counts: Optional[Callable[[Finding], bool]] = None) -> int:
    """100 minus the penalties of the findings that count, clamped to [0, 100]"""
    total = sum(f.penalty for f in findings if counts is None or counts(f))
    return int(clamp(MAX_SCORE - total, MIN_SCORE, MAX_SCORE))


def score_category(category: ScoreCategory, findings: Iterable[Finding]) -> CategoryScore:
    """Score one category from the findings attributed to it"""
    category = ScoreCategory(category)
    own: List[Finding] = [f for f in findings if f.category == category]
    return CategoryScore(
        category=category,
        score=penalty_score(own),
        blocker_count=sum(1 for f in own if f.severity == Severity.BLOCKER),
        findings=own,
    )


def score_categories(findings: Iterable[Finding]) -> Dict[ScoreCategory, CategoryScore]:
    """Score every category, in canonical category order"""
    findings = list(findings)
    return {category: score_category(category, findings) for category in ScoreCategory}

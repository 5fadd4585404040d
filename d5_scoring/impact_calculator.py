"""Impact calculator for estimated conversion loss."""
from typing import Iterable, List, Optional

from core.utils import round_half_up
from d3_assessment.audit_schema import EstimatedImpact, Finding

from .constants import CONVERSION_LOSS_DECIMALS
from .rules_schema import ScoringConfig, get_scoring_config


def finding_contribution(finding: Finding, config: Optional[ScoringConfig] = None) -> float:
    """
    Estimated conversion loss (percentage points) attributable to one finding.

    Args:
        finding: Scored finding
        config: Scoring configuration holding the severity coefficients

    Returns:
        impact x confidence x severity coefficient
    """
    config = config or get_scoring_config()
    coefficient = config.impact.severity_coefficients.get(finding.severity, 0.0)
    return finding.impact * finding.confidence * coefficient


def calculate_impact(findings: Iterable[Finding], config: Optional[ScoringConfig] = None) -> EstimatedImpact:
    """
    Estimate the conversion loss caused by a set of findings.

    The total is capped at ``impact.max_conversion_loss_percent``; the top
    contributors are the ids with the largest individual contribution, ties
    broken by id.
    """
    config = config or get_scoring_config()
    impact_config = config.impact

    contributions = {}
    for finding in findings:
        # one logical finding per id, even if listed twice
        contributions[finding.id] = finding_contribution(finding, config)

    total = min(sum(contributions.values()), impact_config.max_conversion_loss_percent)

    ranked: List[str] = [
        finding_id
        for finding_id, value in sorted(contributions.items(), key=lambda item: (-item[1], item[0]))
        if value > 0
    ]

    return EstimatedImpact(
        conversion_loss_percent=round_half_up(round(total, 6), CONVERSION_LOSS_DECIMALS),
        top_contributors=ranked[: impact_config.top_contributor_count],
    )

"""
Audit Scoring Engine

Runs the scoring chain over one audit snapshot:

    rules -> category scores -> overall / projected scores
          -> estimated impact -> top issues and fast wins

The engine is stateless apart from optional metrics; the audit it is given
is never modified and ``score_audit`` returns a new audit with ``scoring``
attached.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from core.exceptions import ScoringError
from core.logging import get_logger
from core.utils import utc_now
from d3_assessment.audit_schema import Finding, NormalizedAudit, ScoringOutput

from .category_scorer import score_categories
from .impact_calculator import calculate_impact
from .issue_selector import select_fast_wins, select_top_issues
from .overall_scorer import calculate_overall_score, calculate_projected_scores
from .rules import Rule, evaluate_rules
from .rules_schema import ScoringConfig, get_scoring_config

logger = get_logger(__name__, domain="d5")


@dataclass
class ScoringMetrics:
    """Metrics for scoring performance monitoring"""

    total_evaluations: int = 0
    total_execution_time: float = 0.0
    total_findings: int = 0
    score_distribution: Dict[int, int] = field(default_factory=dict)

    def add_evaluation(self, execution_time: float, overall_score: int, finding_count: int):
        """Add metrics for a single evaluation"""
        self.total_evaluations += 1
        self.total_execution_time += execution_time
        self.total_findings += finding_count

        # bucket by tens (0-9, 10-19, ... 100)
        bucket = (overall_score // 10) * 10
        self.score_distribution[bucket] = self.score_distribution.get(bucket, 0) + 1

    @property
    def average_execution_time(self) -> float:
        """Get average execution time per evaluation"""
        return self.total_execution_time / self.total_evaluations if self.total_evaluations > 0 else 0.0


class AuditScoringEngine:
    """
    Scores normalized audits with the registered finding rules

    Args:
        config: Scoring configuration; defaults to the configured YAML file
        rules: Rules to evaluate; defaults to every registered rule
        enable_metrics: Whether to collect performance metrics
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        rules: Optional[Iterable[Rule]] = None,
        enable_metrics: bool = True,
    ):
        self.config = config or get_scoring_config()
        self.rules = list(rules) if rules is not None else None
        self.metrics = ScoringMetrics() if enable_metrics else None

    @property
    def version(self) -> str:
        return self.config.version

    def evaluate(self, audit: NormalizedAudit) -> List[Finding]:
        """Findings for one audit, in rule registration order"""
        return evaluate_rules(audit, self.rules)

    def score(self, audit: NormalizedAudit, generated_at: Optional[datetime] = None) -> ScoringOutput:
        """
        Build the scoring output for one audit

        Raises:
            ScoringError: if the scoring output cannot be assembled
        """
        start_time = time.time()
        findings = self.evaluate(audit)

        try:
            category_scores = score_categories(findings)
            overall = calculate_overall_score(category_scores, self.config)
            projected, with_product = calculate_projected_scores(category_scores, self.config, overall)

            output = ScoringOutput(
                overall_score=overall,
                projected_score=projected,
                projected_score_with_product=with_product,
                estimated_impact=calculate_impact(findings, self.config),
                category_scores=category_scores,
                top_issues=select_top_issues(findings, self.config),
                fast_wins=select_fast_wins(findings, self.config),
                generated_at=generated_at or utc_now(),
                version=self.version,
            )
        except ValueError as e:
            raise ScoringError(f"Failed to score audit: {e}", audit_id=audit.audit_id) from e

        execution_time = time.time() - start_time
        if self.metrics is not None:
            self.metrics.add_evaluation(execution_time, overall, len(findings))

        logger.info(
            f"Scored audit {audit.audit_id}: {overall} (projected {projected}) in {execution_time:.3f}s",
            extra={
                "audit_id": audit.audit_id,
                "overall_score": overall,
                "finding_count": len(findings),
                "blocker_count": sum(cs.blocker_count for cs in category_scores.values()),
            },
        )
        return output

    def score_audit(self, audit: NormalizedAudit, generated_at: Optional[datetime] = None) -> NormalizedAudit:
        """Return a copy of ``audit`` with its scoring attached"""
        return audit.model_copy(update={"scoring": self.score(audit, generated_at)})


def score_audit(audit: NormalizedAudit, config: Optional[ScoringConfig] = None) -> NormalizedAudit:
    """Score an audit with the default rule set"""
    return AuditScoringEngine(config=config, enable_metrics=False).score_audit(audit)

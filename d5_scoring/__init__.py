"""
D5 Scoring Module

Turns a normalized audit into findings, category scores, an overall and
projected score, and the ranked top issues and fast wins.
"""

from .category_scorer import score_categories, score_category
from .engine import AuditScoringEngine, ScoringMetrics, score_audit
from .impact_calculator import calculate_impact
from .issue_selector import MergedFinding, merge_finding_lists, select_fast_wins, select_top_issues
from .overall_scorer import calculate_overall_score, calculate_projected_scores
from .rules import RULE_REGISTRY, evaluate_rules
from .rules_schema import ScoringConfig, get_scoring_config, load_scoring_config

__version__ = "1.0.0"

__all__ = [
    # Engine
    "AuditScoringEngine",
    "ScoringMetrics",
    "score_audit",
    # Stages
    "evaluate_rules",
    "RULE_REGISTRY",
    "score_category",
    "score_categories",
    "calculate_overall_score",
    "calculate_projected_scores",
    "calculate_impact",
    "select_top_issues",
    "select_fast_wins",
    "merge_finding_lists",
    "MergedFinding",
    # Config
    "ScoringConfig",
    "get_scoring_config",
    "load_scoring_config",
]

"""
Finding rules

Importing this package registers every rule module in ``RULE_REGISTRY``.
Findings are reported in registration order: module import order below,
then definition order within each module.
"""

from . import content, conversion, performance, security, seo, trust  # noqa: F401
from .base import RULE_REGISTRY, Rule, RuleHit, RuleRegistry, evaluate_rules, rule

__all__ = [
    "RULE_REGISTRY",
    "Rule",
    "RuleHit",
    "RuleRegistry",
    "evaluate_rules",
    "rule",
]

"""
Finding rule registry

A rule is a pure function over one immutable ``NormalizedAudit``. It is
declared with the ``@rule`` decorator, which carries everything static about
the finding it emits (id, category, severity, effort, impact, confidence,
penalty, fix, tags). The function body only decides whether the rule fires
and with what evidence:

* return ``None`` to abstain (inputs missing or nothing wrong);
* return a list of evidence strings to fire with the declared attributes;
* return a ``RuleHit`` to fire with severity / impact / penalty overrides,
  for rules whose severity scales with the measured value.

Finding ids are ``"<category>.<slug>"``; one rule emits at most one finding
per audit, so the same rule over the same inputs always yields the same id.
"""
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from core.logging import get_logger
from d3_assessment.audit_schema import Finding, NormalizedAudit
from d3_assessment.types import Effort, ScoreCategory, Severity

logger = get_logger(__name__, domain="d5")


@dataclass(frozen=True)
class RuleHit:
    """A firing rule with optional per-audit overrides"""

    evidence: Sequence[str]
    severity: Optional[Severity] = None
    impact: Optional[float] = None
    penalty: Optional[int] = None


RuleOutcome = Union[None, Sequence[str], RuleHit]
RuleCheck = Callable[[NormalizedAudit], RuleOutcome]


@dataclass(frozen=True)
class Rule:
    """A registered finding rule"""

    id: str
    title: str
    category: ScoreCategory
    severity: Severity
    effort: Effort
    impact: float
    confidence: float
    penalty: int
    fix: str
    tags: Tuple[str, ...]
    check: RuleCheck = field(compare=False, repr=False)

    def evaluate(self, audit: NormalizedAudit) -> Optional[Finding]:
        """Run the check and build its finding, or None when it abstains"""
        outcome = self.check(audit)
        if outcome is None:
            return None

        hit = outcome if isinstance(outcome, RuleHit) else RuleHit(evidence=outcome)
        return Finding(
            id=self.id,
            title=self.title,
            category=self.category,
            severity=hit.severity or self.severity,
            impact=self.impact if hit.impact is None else hit.impact,
            confidence=self.confidence,
            penalty=self.penalty if hit.penalty is None else hit.penalty,
            evidence=list(hit.evidence),
            fix=self.fix,
            effort=self.effort,
            tags=list(self.tags),
        )


class RuleRegistry:
    """Ordered collection of rules; ids are unique"""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: Dict[str, Rule] = {}
        for r in rules:
            self.register(r)

    def register(self, new_rule: Rule) -> Rule:
        if new_rule.id in self._rules:
            raise ValueError(f"Duplicate rule id: {new_rule.id}")
        self._rules[new_rule.id] = new_rule
        return new_rule

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def for_category(self, category: ScoreCategory) -> List[Rule]:
        return [r for r in self._rules.values() if r.category == category]

    def __iter__(self) -> Iterator[Rule]:
        return iter(tuple(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules


RULE_REGISTRY = RuleRegistry()


def rule(
    slug: str,
    *,
    title: str,
    category: ScoreCategory,
    severity: Severity,
    effort: Effort,
    impact: float,
    confidence: float,
    penalty: int,
    fix: str,
    tags: Sequence[str] = (),
    registry: RuleRegistry = RULE_REGISTRY,
) -> Callable[[RuleCheck], RuleCheck]:
    """
    Register a finding rule

    Example:
        @rule("no-https", title="Site is not served over HTTPS", ...)
        def no_https(audit):
            ...
    """
    if not 0 <= impact <= 1 or not 0 <= confidence <= 1:
        raise ValueError(f"Rule {slug}: impact and confidence must be within [0, 1]")
    if penalty < 0:
        raise ValueError(f"Rule {slug}: penalty must be non-negative")

    def decorator(check: RuleCheck) -> RuleCheck:
        registry.register(
            Rule(
                id=f"{ScoreCategory(category).value}.{slug}",
                title=title,
                category=ScoreCategory(category),
                severity=Severity(severity),
                effort=Effort(effort),
                impact=impact,
                confidence=confidence,
                penalty=penalty,
                fix=fix,
                tags=tuple(tags),
                check=check,
            )
        )
        return check

    return decorator


def evaluate_rules(audit: NormalizedAudit, rules: Optional[Iterable[Rule]] = None) -> List[Finding]:
    """
    Run every rule over one audit

    A rule that raises is logged and treated as abstaining; it never aborts
    the audit.

    Args:
        audit: Audit snapshot to evaluate
        rules: Rules to run; defaults to every registered rule

    Returns:
        Findings in rule registration order
    """
    findings = []
    log = logger.with_context(audit_id=audit.audit_id)

    for r in RULE_REGISTRY if rules is None else rules:
        started = time.perf_counter()
        try:
            finding = r.evaluate(audit)
        except Exception as e:
            log.warning(f"Rule {r.id} failed and was skipped: {e}", extra={"rule_id": r.id})
            continue

        elapsed_ms = (time.perf_counter() - started) * 1000
        if finding is not None:
            log.debug("Rule fired", extra={"rule_id": r.id, "elapsed_ms": round(elapsed_ms, 3)})
            findings.append(finding)

    return findings


# ---------------------------------------------------------------------------
# Helpers shared by rule modules
# ---------------------------------------------------------------------------


def known_false(*values: Optional[bool]) -> bool:
    """True when at least one source reported the fact and none reported it present"""
    known = [v for v in values if v is not None]
    return bool(known) and not any(known)


def first_known(*values):
    """First value that is not None"""
    for v in values:
        if v is not None:
            return v
    return None


def format_ms(value: float) -> str:
    if value >= 1000:
        return f"{value / 1000:.1f}s"
    return f"{value:.0f}ms"

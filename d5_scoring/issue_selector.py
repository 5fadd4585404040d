"""
Issue selector

Picks the findings a report leads with (top issues) and the cheap, useful
fixes (fast wins), and merges the category lists, top issues and fast wins
into one deduplicated list for export.
"""
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from d3_assessment.audit_schema import CategoryScore, Finding
from d3_assessment.types import Severity

from .rules_schema import ScoringConfig, get_scoring_config


def _dedupe(findings: Iterable[Finding]) -> List[Finding]:
    unique: Dict[str, Finding] = OrderedDict()
    for finding in findings:
        unique.setdefault(finding.id, finding)
    return list(unique.values())


def issue_priority(finding: Finding) -> tuple:
    """Sort key: most severe first, then weighted impact, then id"""
    return (Severity(finding.severity).rank, -(finding.penalty * finding.impact * finding.confidence), finding.id)


def select_top_issues(
    findings: Iterable[Finding], config: Optional[ScoringConfig] = None, limit: Optional[int] = None
) -> List[Finding]:
    """The most important findings across all categories"""
    config = config or get_scoring_config()
    limit = config.selection.top_issues_limit if limit is None else limit
    return sorted(_dedupe(findings), key=issue_priority)[:limit]


def select_fast_wins(
    findings: Iterable[Finding], config: Optional[ScoringConfig] = None, limit: Optional[int] = None
) -> List[Finding]:
    """
    Low-effort findings worth fixing first

    A fast win has an allowed effort, is more than trivial and meets the
    minimum impact. Fast wins may also be top issues.
    """
    config = config or get_scoring_config()
    selection = config.selection
    limit = selection.fast_wins_limit if limit is None else limit
    efforts = set(selection.fast_win_efforts)

    candidates = [
        f
        for f in _dedupe(findings)
        if f.effort in efforts and f.severity != Severity.TRIVIAL and f.impact >= selection.fast_win_min_impact
    ]
    candidates.sort(key=lambda f: (-(f.impact * f.confidence), f.id))
    return candidates[:limit]


@dataclass(frozen=True)
class MergedFinding:
    """One finding with its membership in the selection lists"""

    finding: Finding
    is_top_issue: bool
    is_fast_win: bool
    ranking: Optional[int]


def merge_finding_lists(
    category_scores: Mapping[object, CategoryScore],
    top_issues: Sequence[Finding],
    fast_wins: Sequence[Finding],
) -> List[MergedFinding]:
    """
    Merge category findings, top issues and fast wins into one row per id

    Later lists overwrite the payload of an id already seen, which is safe
    because an id names one logical finding. ``ranking`` is the 1-based
    position in top issues if present there, else in fast wins, else None.
    First-insertion order is preserved.
    """
    merged: Dict[str, Finding] = OrderedDict()
    for category_score in category_scores.values():
        for finding in category_score.findings:
            merged[finding.id] = finding
    for finding in top_issues:
        merged[finding.id] = finding
    for finding in fast_wins:
        merged[finding.id] = finding

    top_rank: Dict[str, int] = {}
    for index, finding in enumerate(top_issues, start=1):
        top_rank.setdefault(finding.id, index)
    fast_rank: Dict[str, int] = {}
    for index, finding in enumerate(fast_wins, start=1):
        fast_rank.setdefault(finding.id, index)

    return [
        MergedFinding(
            finding=finding,
            is_top_issue=finding_id in top_rank,
            is_fast_win=finding_id in fast_rank,
            ranking=top_rank.get(finding_id, fast_rank.get(finding_id)),
        )
        for finding_id, finding in merged.items()
    ]

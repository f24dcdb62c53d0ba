"""
Risk Table
Single lookup from risk level to display colour and advisory score bounds.
"""

from typing import Dict, Iterable, NamedTuple

from legallens.schemas.domain import Clause, RiskLevel


class RiskStyle(NamedTuple):
    color: str
    min_score: int
    max_score: int


RISK_TABLE: Dict[RiskLevel, RiskStyle] = {
    RiskLevel.HIGH: RiskStyle(color="#ef4444", min_score=70, max_score=100),
    RiskLevel.MEDIUM: RiskStyle(color="#f59e0b", min_score=40, max_score=69),
    RiskLevel.LOW: RiskStyle(color="#10b981", min_score=0, max_score=39),
}


def risk_level_for_score(score: int | None) -> RiskLevel:
    """
    Advisory bucket for a 0-100 score.
    The backend's overall risk is authoritative; this never overrides it.
    """
    value = max(0, min(100, score or 0))
    for level, style in RISK_TABLE.items():
        if style.min_score <= value <= style.max_score:
            return level
    return RiskLevel.LOW


def risk_color(level: RiskLevel) -> str:
    return RISK_TABLE[level].color


def count_by_level(clauses: Iterable[Clause]) -> Dict[RiskLevel, int]:
    """Count clauses per risk level, every level present."""
    counts = {level: 0 for level in RISK_TABLE}
    for clause in clauses:
        counts[clause.risk_level] += 1
    return counts

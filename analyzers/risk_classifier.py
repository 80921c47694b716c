"""
Risk Classifier
Static rule table mapping extracted signals to a risk tier, an additive
score and an ordered list of recommendations
"""

from dataclasses import dataclass
from typing import Callable, List, Tuple

from models import RiskAssessment, RiskTier, Signals

HIGH_FAILED_LOGINS = 10
MEDIUM_FAILED_LOGINS = 5
MEDIUM_SECURITY_UPDATES = 5
ELEVATED_LOAD = 1.5


@dataclass(frozen=True)
class ScoringRule:
    """A threshold check contributing to the risk score"""
    name: str
    applies: Callable[[Signals], bool]
    points: int
    tier: RiskTier
    finding: str


@dataclass(frozen=True)
class RecommendationRule:
    """A recommendation emitted when its condition holds"""
    applies: Callable[[Signals], bool]
    render: Callable[[Signals], str]


def _failed_service_advice(s: Signals) -> str:
    if s.failed_service_names:
        return f"Investigate and resolve failed services: {', '.join(s.failed_service_names)}"
    return f"Investigate and resolve {s.failed_service_count} failed services"


def _failed_login_advice(s: Signals) -> str:
    text = (f"IMMEDIATE: Review the sources of {s.failed_login_count} failed logins "
            f"and consider IP blocking")
    if s.failed_login_details:
        text += f" (target accounts: {'; '.join(s.failed_login_details)})"
    return text


# Evaluated in order; the first two failed-login rules are mutually exclusive
SCORING_RULES: Tuple[ScoringRule, ...] = (
    ScoringRule(
        name='failed_logins_high',
        applies=lambda s: s.failed_login_count > HIGH_FAILED_LOGINS,
        points=3,
        tier=RiskTier.HIGH,
        finding="HIGH RISK: Multiple authentication failures indicate active attack",
    ),
    ScoringRule(
        name='failed_logins_medium',
        applies=lambda s: MEDIUM_FAILED_LOGINS < s.failed_login_count <= HIGH_FAILED_LOGINS,
        points=2,
        tier=RiskTier.MEDIUM,
        finding="MEDIUM RISK: Elevated authentication failures",
    ),
    ScoringRule(
        name='security_updates',
        applies=lambda s: s.pending_security_update_count > MEDIUM_SECURITY_UPDATES,
        points=2,
        tier=RiskTier.MEDIUM,
        finding="MEDIUM RISK: Multiple security updates pending",
    ),
    ScoringRule(
        name='failed_services',
        applies=lambda s: s.failed_service_count > 0,
        points=1,
        tier=RiskTier.MEDIUM,
        finding="MEDIUM RISK: Service failures may indicate system issues",
    ),
)

# Highest priority first
RECOMMENDATION_RULES: Tuple[RecommendationRule, ...] = (
    RecommendationRule(
        applies=lambda s: s.failed_login_count > MEDIUM_FAILED_LOGINS,
        render=_failed_login_advice,
    ),
    RecommendationRule(
        applies=lambda s: s.failed_login_count > MEDIUM_FAILED_LOGINS,
        render=lambda s: "Strengthen authentication (disable password auth, use key-only)",
    ),
    RecommendationRule(
        applies=lambda s: s.failed_service_count > 0,
        render=_failed_service_advice,
    ),
    RecommendationRule(
        applies=lambda s: s.pending_security_update_count > MEDIUM_SECURITY_UPDATES,
        render=lambda s: f"Apply {s.pending_security_update_count} pending security updates immediately",
    ),
    RecommendationRule(
        applies=lambda s: s.load_average is not None and s.load_average > ELEVATED_LOAD,
        render=lambda s: f"Monitor system performance - elevated load detected ({s.load_average})",
    ),
    RecommendationRule(
        applies=lambda s: True,
        render=lambda s: "Review full audit log for detailed findings",
    ),
    RecommendationRule(
        applies=lambda s: True,
        render=lambda s: "Keep regular security audits scheduled (weekly/monthly)",
    ),
    RecommendationRule(
        applies=lambda s: True,
        render=lambda s: "Monitor these reports for recurring security issues",
    ),
)


class RiskClassifier:
    """Deterministic, stateless scoring over a fixed rule table"""

    def __init__(self, scoring_rules=SCORING_RULES, recommendation_rules=RECOMMENDATION_RULES):
        self.scoring_rules = tuple(scoring_rules)
        self.recommendation_rules = tuple(recommendation_rules)

    def classify(self, signals: Signals) -> RiskAssessment:
        score = 0
        tier = RiskTier.LOW
        findings = []

        for rule in self.scoring_rules:
            if not rule.applies(signals):
                continue
            score += rule.points
            findings.append(rule.finding)
            if rule.tier == RiskTier.HIGH or tier == RiskTier.LOW:
                tier = rule.tier

        if score == 0:
            findings.append("LOW RISK: No immediate security concerns identified")

        return RiskAssessment(
            tier=tier,
            score=score,
            recommendations=self.recommend(signals),
            findings=findings,
        )

    def recommend(self, signals: Signals) -> List[str]:
        items = [r.render(signals) for r in self.recommendation_rules if r.applies(signals)]
        return [f"{i}. {text}" for i, text in enumerate(items, start=1)]

"""
Tests for the risk classifier rule table.
"""

import pytest

from models import RiskTier, Signals


def classify(**kwargs):
    from analyzers.risk_classifier import RiskClassifier

    return RiskClassifier().classify(Signals(**kwargs))


def numbered(items):
    """Strip the 'N. ' prefixes from recommendations"""
    return [item.split('. ', 1)[1] for item in items]


class TestRiskTier:
    """Tests for tier and score computation."""

    def test_no_signals_is_low(self):
        """Test that a clean host scores zero and is LOW."""
        result = classify()

        assert result.tier == RiskTier.LOW
        assert result.score == 0
        assert result.findings == ["LOW RISK: No immediate security concerns identified"]

    @pytest.mark.parametrize('logins,updates,services,tier', [
        (0, 0, 0, RiskTier.LOW),
        (5, 5, 0, RiskTier.LOW),
        (6, 0, 0, RiskTier.MEDIUM),
        (10, 0, 0, RiskTier.MEDIUM),
        (11, 0, 0, RiskTier.HIGH),
        (0, 6, 0, RiskTier.MEDIUM),
        (0, 0, 1, RiskTier.MEDIUM),
        (11, 6, 2, RiskTier.HIGH),
    ])
    def test_tier_thresholds(self, logins, updates, services, tier):
        """Test HIGH iff logins > 10, MEDIUM iff any other rule fires."""
        result = classify(
            failed_login_count=logins,
            pending_security_update_count=updates,
            failed_service_count=services,
        )

        assert result.tier == tier

    def test_scores_are_additive(self):
        """Test that every fired rule adds its points."""
        assert classify(failed_login_count=11).score == 3
        assert classify(failed_login_count=7).score == 2
        assert classify(pending_security_update_count=6).score == 2
        assert classify(failed_service_count=4).score == 1
        assert classify(failed_login_count=7, pending_security_update_count=6, failed_service_count=1).score == 5

    def test_load_does_not_change_score(self):
        """Test that load average only affects recommendations."""
        assert classify(load_average=9.5).score == 0
        assert classify(load_average=None).tier == RiskTier.LOW

    def test_idempotent(self):
        """Test that classifying the same signals twice gives equal results."""
        from analyzers.risk_classifier import RiskClassifier

        signals = Signals(failed_login_count=12, failed_service_count=3,
                          failed_service_names=['nginx.service'], pending_security_update_count=7)
        classifier = RiskClassifier()

        assert classifier.classify(signals) == classifier.classify(signals)


class TestRecommendations:
    """Tests for recommendation generation."""

    def test_scenario_a_medium_login_failures(self):
        """Test six failed logins alone: MEDIUM, score 2, auth advice only."""
        result = classify(failed_login_count=6)
        items = numbered(result.recommendations)

        assert result.tier == RiskTier.MEDIUM
        assert result.score == 2
        assert any('Strengthen authentication' in item for item in items)
        assert not any('failed services' in item for item in items)
        assert not any('security updates' in item for item in items)

    def test_scenario_b_priority_order(self):
        """Test that immediate, service and update items appear in that order."""
        result = classify(
            failed_login_count=12,
            failed_service_count=3,
            failed_service_names=['nginx.service', 'redis.service', 'cron.service'],
            pending_security_update_count=7,
        )
        items = numbered(result.recommendations)

        immediate = next(i for i, item in enumerate(items) if item.startswith('IMMEDIATE'))
        services = next(i for i, item in enumerate(items) if 'failed services' in item)
        updates = next(i for i, item in enumerate(items) if 'security updates' in item)

        assert result.tier == RiskTier.HIGH
        assert result.score >= 6
        assert immediate < services < updates

    def test_values_are_interpolated(self):
        """Test that counts and names come from the signals."""
        result = classify(
            failed_login_count=8,
            failed_login_details=['root (from 203.0.113.9)'],
            failed_service_count=2,
            failed_service_names=['nginx.service', 'redis.service'],
            pending_security_update_count=9,
        )
        text = '\n'.join(result.recommendations)

        assert '8 failed logins' in text
        assert 'root (from 203.0.113.9)' in text
        assert 'nginx.service, redis.service' in text
        assert 'Apply 9 pending security updates' in text

    def test_service_count_used_without_names(self):
        """Test the count fallback when unit names were not extracted."""
        result = classify(failed_service_count=2)

        assert any('resolve 2 failed services' in item for item in result.recommendations)

    def test_numbering_is_sequential(self):
        """Test that recommendations are numbered 1..n."""
        result = classify(failed_login_count=12, pending_security_update_count=7)

        prefixes = [item.split('.', 1)[0] for item in result.recommendations]
        assert prefixes == [str(i) for i in range(1, len(prefixes) + 1)]

    def test_elevated_load_advice(self):
        """Test that load above 1.5 adds a monitoring recommendation."""
        assert any('elevated load' in item for item in classify(load_average=1.6).recommendations)
        assert not any('elevated load' in item for item in classify(load_average=1.5).recommendations)

"""Audit collection and analysis package"""
from .audit_log import AuditLogBuilder
from .probe_battery import ProbeBattery
from .signal_extractor import SignalExtractor
from .risk_classifier import RiskClassifier

__all__ = ['AuditLogBuilder', 'ProbeBattery', 'SignalExtractor', 'RiskClassifier']

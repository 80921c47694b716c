"""Report generators package"""
from .analysis_report import AnalysisReportGenerator
from .email_summary import build_email

__all__ = ['AnalysisReportGenerator', 'build_email']

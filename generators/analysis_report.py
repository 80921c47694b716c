"""
Analysis Report Generator
Renders the per-run security analysis document from signals and risk assessment
"""

import logging
import os
from datetime import datetime, timedelta
from typing import List

from analyzers.risk_classifier import ELEVATED_LOAD, MEDIUM_FAILED_LOGINS
from models import AuditReport, RiskAssessment, Signals

logger = logging.getLogger(__name__)

HIGH_LOAD_THRESHOLD = 2.0

COMPLIANCE_NOTES = [
    "SSH configuration reviewed for security best practices",
    "User account management assessed",
    "Network service exposure documented",
    "System logging functionality verified",
    "File permission anomalies checked",
]


class AnalysisReportGenerator:
    """Builds the analysis document archived next to the audit log"""

    def __init__(self, report: AuditReport, signals: Signals, assessment: RiskAssessment,
                 generated_at: datetime = None):
        self.report = report
        self.signals = signals
        self.assessment = assessment
        self.generated_at = generated_at or datetime.now()

    def render(self) -> str:
        lines = [
            "=== SECURITY ANALYSIS ===",
            f"Host: {self.report.host_name} ({self.report.address}:{self.report.port})",
            f"Analysis Date: {self.generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
            f"Risk Level: {self.assessment.tier.value} (score {self.assessment.score})",
            "",
        ]
        lines += self._system_health()
        lines += self._security_assessment()
        lines += ["RISK ASSESSMENT:"] + self.assessment.findings + [""]
        lines += ["RECOMMENDATIONS:", "================"] + self.assessment.recommendations + [""]
        lines += ["COMPLIANCE NOTES:", "=================="]
        lines += [f"• {note}" for note in COMPLIANCE_NOTES]
        lines.append("")

        if self.report.failed_probes:
            lines.append(f"Probes with limited access: {', '.join(self.report.failed_probes)}")
            lines.append("")

        next_audit = self.generated_at + timedelta(weeks=1)
        lines.append(f"NEXT AUDIT SUGGESTED: {next_audit.strftime('%Y-%m-%d %H:%M')}")
        return '\n'.join(lines) + '\n'

    def _system_health(self) -> List[str]:
        s = self.signals
        lines = ["SYSTEM HEALTH:"]
        if s.load_average is None:
            lines.append("ℹ️  Load average: Not available")
        elif s.load_average > HIGH_LOAD_THRESHOLD:
            lines.append(f"⚠️  HIGH LOAD: System load average is {s.load_average} "
                         f"(threshold: {HIGH_LOAD_THRESHOLD})")
        elif s.load_average > ELEVATED_LOAD:
            lines.append(f"⚠️  Load average: {s.load_average} (elevated)")
        else:
            lines.append(f"✅ Load average: {s.load_average} (normal)")

        if s.memory_usage:
            lines.append(f"ℹ️  Memory usage: {s.memory_usage}")
        lines.append("")
        return lines

    def _security_assessment(self) -> List[str]:
        s = self.signals
        lines = ["SECURITY ASSESSMENT:"]

        if s.failed_login_count > MEDIUM_FAILED_LOGINS:
            lines.append(f"🚨 CRITICAL: {s.failed_login_count} failed login attempts detected "
                         f"- possible brute force attack")
        elif s.failed_login_count > 0:
            lines.append(f"⚠️  WARNING: {s.failed_login_count} failed login attempts detected")
        else:
            lines.append("✅ No recent failed login attempts")
        if s.failed_login_count and s.failed_login_details:
            lines.append(f"    Recent attempts: {'; '.join(s.failed_login_details)}")

        if s.failed_service_count > 0:
            lines.append(f"⚠️  WARNING: {s.failed_service_count} failed services detected")
            if s.failed_service_names:
                lines.append(f"    Failed services: {', '.join(s.failed_service_names)}")
        else:
            lines.append("✅ All services running normally")

        if s.pending_security_update_count > 0:
            lines.append(f"⚠️  ATTENTION: {s.pending_security_update_count} security updates available")
        else:
            lines.append("✅ Security updates current")

        lines.append(f"ℹ️  Network exposure: {s.listening_port_count} listening ports detected")
        if s.listening_port_summary:
            lines.append(f"    Key services: {s.listening_port_summary}")
        lines.append("")
        return lines

    def generate(self, output_path: str) -> str:
        """Write the analysis document and return its path"""
        os.makedirs(os.path.dirname(output_path) or '.', exist_ok=True)
        with open(output_path, 'w') as f:
            f.write(self.render())
        logger.info(f"Analysis generated: {output_path}")
        return output_path

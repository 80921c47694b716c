"""
Email Summary
Composes the subject and plain-text body of the emailed audit report
"""

from datetime import datetime
from typing import List, Optional, Tuple

from models import AuditReport

SUMMARY_SECTIONS = ["UPTIME AND LOAD", "MEMORY USAGE", "DISK USAGE"]


def _head(text: str, count: int) -> List[str]:
    return [line for line in text.splitlines() if line.strip()][:count]


def build_email(report: AuditReport, audit_log_path: str, analysis_text: Optional[str] = None,
                analysis_path: Optional[str] = None, now: datetime = None) -> Tuple[str, str]:
    """Return (subject, body) for the report email"""
    now = now or datetime.now()
    subject = f"Security Audit Report - {report.host_name} - {now.strftime('%Y-%m-%d')}"

    lines = []
    if analysis_text:
        lines.append(analysis_text.rstrip('\n'))
        lines += [
            "",
            "=========================================",
            "DETAILED AUDIT LOG SUMMARY:",
            "=========================================",
            "",
            "SYSTEM STATUS:",
        ]
        for label in SUMMARY_SECTIONS:
            lines.append(f"--- {label} ---")
            lines += _head(report.section(label), 5)
        lines += ["", "TOP RESOURCE CONSUMERS:"]
        lines += _head(report.section("TOP PROCESSES BY CPU"), 8)
        lines += ["", "NETWORK SECURITY:"]
        lines += _head(report.section("LISTENING PORTS"), 10)

        failures = [line for line in report.section("FAILED LOGIN ATTEMPTS").splitlines()
                    if "Failed password" in line]
        if failures:
            lines += ["", "FAILED AUTHENTICATION ATTEMPTS:"]
            lines += failures[-5:]
    else:
        lines += ["Analysis not available. Basic summary:", "", "SYSTEM INFORMATION:"]
        lines += _head(report.section("SYSTEM INFORMATION"), 5)
        lines += ["", "LOAD AND MEMORY:"]
        lines += _head(report.section("UPTIME AND LOAD"), 1)
        lines += _head(report.section("MEMORY USAGE"), 2)

    lines += ["", f"Full audit log available at: {audit_log_path}"]
    if analysis_path:
        lines.append(f"Analysis log available at: {analysis_path}")
    lines += ["", "Generated by Multi-Host Security Audit Tool", f"Timestamp: {now.isoformat()}"]
    return subject, '\n'.join(lines) + '\n'

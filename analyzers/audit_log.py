"""
Audit Log Builder
Accumulates probe results into an ordered, labelled audit report
"""

import logging
import os
import re
from datetime import datetime
from typing import List, Optional

from models import AuditReport, ProbeResult

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%a %b %d %H:%M:%S %Y'
HEADER_PATTERN = re.compile(r'^=== SECURITY AUDIT - (?P<name>.+) - (?P<stamp>.+) ===$')
SECTION_PATTERN = re.compile(r'^--- (?P<label>.+) ---$')


def _render_header(host_name: str, address: str, port: int, principal: str, generated_at: datetime) -> str:
    return (
        f"=== SECURITY AUDIT - {host_name} - {generated_at.strftime(TIMESTAMP_FORMAT)} ===\n"
        f"Host: {address}:{port}\n"
        f"User: {principal}\n"
        "\n"
    )


def _render_section(result: ProbeResult) -> str:
    output = result.output
    if output and not output.endswith('\n'):
        output += '\n'
    return f"--- {result.label} ---\n{output}\n"


class AuditLogBuilder:
    """Collects probe results in execution order.

    With a log_path, the header and each section are appended to disk as
    they arrive so an interrupted run still leaves a partial log behind.
    """

    def __init__(self, host_name: str, address: str, port: int = 22, principal: str = '',
                 generated_at: datetime = None, log_path: Optional[str] = None):
        self.host_name = host_name
        self.address = address
        self.port = port
        self.principal = principal
        self.generated_at = generated_at or datetime.now()
        self.log_path = log_path
        self.results: List[ProbeResult] = []

        if self.log_path:
            os.makedirs(os.path.dirname(self.log_path) or '.', exist_ok=True)
            with open(self.log_path, 'w') as f:
                f.write(_render_header(host_name, address, port, principal, self.generated_at))

    def add(self, result: ProbeResult) -> None:
        self.results.append(result)
        if self.log_path:
            with open(self.log_path, 'a') as f:
                f.write(_render_section(result))

    def build(self) -> AuditReport:
        return AuditReport(
            host_name=self.host_name,
            address=self.address,
            port=self.port,
            principal=self.principal,
            generated_at=self.generated_at,
            results=tuple(self.results),
        )


def render_audit_log(report: AuditReport) -> str:
    """Archived text form of a report"""
    parts = [_render_header(report.host_name, report.address, report.port,
                            report.principal, report.generated_at)]
    parts.extend(_render_section(r) for r in report.results)
    return ''.join(parts)


def parse_audit_log(text: str) -> AuditReport:
    """Read an archived audit log back into a report.

    Success flags are not stored in the log; a section is marked failed when
    its last line is the failure placeholder.
    """
    from analyzers.probe_battery import FAILURE_PLACEHOLDER

    host_name, address, port, principal = '', '', 22, ''
    generated_at = datetime.now()
    sections = []
    current_label = None
    current_lines: List[str] = []

    def flush():
        if current_label is None:
            return
        lines = list(current_lines)
        # Each section is terminated by one blank separator line
        if lines and lines[-1] == '':
            lines.pop()
        output = '\n'.join(lines) + '\n' if lines else ''
        failed = bool(lines) and lines[-1] == FAILURE_PLACEHOLDER
        sections.append(ProbeResult(label=current_label, output=output, succeeded=not failed))

    for line in text.splitlines():
        section = SECTION_PATTERN.match(line)
        if section:
            flush()
            current_label = section.group('label')
            current_lines = []
            continue

        if current_label is not None:
            current_lines.append(line)
            continue

        header = HEADER_PATTERN.match(line)
        if header:
            host_name = header.group('name')
            try:
                generated_at = datetime.strptime(header.group('stamp'), TIMESTAMP_FORMAT)
            except ValueError:
                logger.debug(f"Unrecognised audit timestamp: {header.group('stamp')}")
        elif line.startswith('Host: '):
            address, _, port_str = line[len('Host: '):].rpartition(':')
            port = int(port_str) if port_str.isdigit() else 22
        elif line.startswith('User: '):
            principal = line[len('User: '):]

    flush()

    return AuditReport(
        host_name=host_name,
        address=address,
        port=port,
        principal=principal,
        generated_at=generated_at,
        results=tuple(sections),
    )

"""
Signal Extractor
Derives numeric and short textual signals from the labelled sections of an
audit report. Every rule is total: a missing or malformed section yields the
zero value for its signal, never an exception.
"""

import logging
import re
from typing import List, Optional, Pattern, Union

from analyzers.probe_battery import FAILURE_PLACEHOLDER
from models import AuditReport, Signals

logger = logging.getLogger(__name__)

LOAD_SECTION = "UPTIME AND LOAD"
MEMORY_SECTION = "MEMORY USAGE"
FAILED_LOGIN_SECTION = "FAILED LOGIN ATTEMPTS"
FAILED_SERVICES_SECTION = "FAILED SERVICES"
SECURITY_UPDATES_SECTION = "SECURITY UPDATES"
LISTENING_PORTS_SECTION = "LISTENING PORTS"

# Privilege-escalation log lines repeat the failure text; drop them by default
DEFAULT_FAILED_LOGIN_EXCLUDE = r'sudo:'

WELL_KNOWN_PORTS = (21, 22, 25, 53, 80, 110, 143, 443, 993, 995, 3306, 5432, 8080)
MAX_PORT_SUMMARY_ENTRIES = 10
MAX_FAILED_LOGIN_DETAILS = 5

# Fallback lines the probes print instead of real data
PLACEHOLDER_LINES = {
    FAILURE_PLACEHOLDER,
    "No auth log access",
    "No apt access or no security updates",
}

LOAD_PATTERN = re.compile(r'load averages?:?\s*(\d+(?:\.\d+)?)')
FAILED_LOGIN_PATTERN = re.compile(r'Failed password for')
FAILED_LOGIN_DETAIL_PATTERN = re.compile(
    r'Failed password for (?P<invalid>invalid user )?(?P<user>\S+) from (?P<source>\S+)'
)
FAILED_STATE_PATTERN = re.compile(r'\bfailed\b')
UNIT_ROW_PATTERN = re.compile(
    r'^\s*(?:[●*x×]\s+)?(?P<unit>[\w@:.\\-]+\.(?:service|socket|timer|mount|target|path|scope))\s'
)
BULLET_PATTERN = re.compile(r'^\s*●\s+(?P<unit>\S+)')
ADDRESS_PORT_PATTERN = re.compile(r'^(?P<addr>.*):(?P<port>\d+)$')


class SignalExtractor:
    """Pure mapping from an AuditReport to Signals"""

    def __init__(self, exclude_pattern: Union[str, Pattern, None] = DEFAULT_FAILED_LOGIN_EXCLUDE,
                 well_known_ports=WELL_KNOWN_PORTS, max_port_entries: int = MAX_PORT_SUMMARY_ENTRIES):
        if isinstance(exclude_pattern, str):
            exclude_pattern = re.compile(exclude_pattern) if exclude_pattern else None
        self.exclude_pattern = exclude_pattern
        self.well_known_ports = set(well_known_ports)
        self.max_port_entries = max_port_entries

    def extract(self, report: AuditReport) -> Signals:
        failed_logins = self._failed_login_lines(_usable_section(report, FAILED_LOGIN_SECTION))
        failed_count, failed_names = self.failed_services(_usable_section(report, FAILED_SERVICES_SECTION))
        ports_text = _usable_section(report, LISTENING_PORTS_SECTION)

        return Signals(
            load_average=self.load_average(_usable_section(report, LOAD_SECTION)),
            failed_login_count=len(failed_logins),
            failed_service_count=failed_count,
            failed_service_names=failed_names,
            pending_security_update_count=self.pending_security_updates(
                _usable_section(report, SECURITY_UPDATES_SECTION)
            ),
            listening_port_summary=self.listening_port_summary(ports_text),
            memory_usage=self.memory_usage(_usable_section(report, MEMORY_SECTION)),
            listening_port_count=sum(1 for line in _data_lines(ports_text) if 'LISTEN' in line),
            failed_login_details=_failed_login_details(failed_logins),
        )

    @staticmethod
    def load_average(text: str) -> Optional[float]:
        match = LOAD_PATTERN.search(text)
        if not match:
            return None
        try:
            return float(match.group(1))
        except ValueError:
            return None

    @staticmethod
    def memory_usage(text: str) -> str:
        for line in text.splitlines():
            parts = line.split()
            if len(parts) >= 3 and parts[0] == 'Mem:':
                return f"{parts[2]}/{parts[1]}"
        return ''

    def _failed_login_lines(self, text: str) -> List[str]:
        lines = []
        for line in _data_lines(text):
            if not FAILED_LOGIN_PATTERN.search(line):
                continue
            if self.exclude_pattern and self.exclude_pattern.search(line):
                continue
            lines.append(line)
        return lines

    def failed_login_count(self, text: str) -> int:
        return len(self._failed_login_lines(text))

    @staticmethod
    def failed_services(text: str):
        """Count of lines reporting a failed state, plus unit names where present"""
        count = 0
        names = []
        for line in _data_lines(text):
            if '=' in line or 'loaded units listed' in line:
                continue
            if not FAILED_STATE_PATTERN.search(line):
                continue
            count += 1
            match = BULLET_PATTERN.match(line) or UNIT_ROW_PATTERN.match(line)
            if match and match.group('unit') not in names:
                names.append(match.group('unit'))
        return count, names

    @staticmethod
    def pending_security_updates(text: str) -> int:
        return sum(1 for line in _data_lines(text) if 'security' in line.lower())

    def listening_port_summary(self, text: str) -> str:
        """Local addr:port entries on well-known ports, first-seen order"""
        entries = []
        for line in _data_lines(text):
            for token in line.split()[1:]:
                match = ADDRESS_PORT_PATTERN.match(token)
                if not match:
                    continue
                if int(match.group('port')) in self.well_known_ports and token not in entries:
                    entries.append(token)
                # Only the local address column is considered
                break
            if len(entries) >= self.max_port_entries:
                break
        return '; '.join(entries[:self.max_port_entries])


def _usable_section(report: AuditReport, label: str) -> str:
    """Section text, or '' when the probe failed and holds only error output"""
    result = report.result(label)
    if result is None or not result.succeeded:
        return ''
    return result.output


def _data_lines(text: str) -> List[str]:
    return [
        line for line in (text or '').splitlines()
        if line.strip() and line.strip() not in PLACEHOLDER_LINES
    ]


def _failed_login_details(lines: List[str]) -> List[str]:
    details = []
    for line in lines:
        match = FAILED_LOGIN_DETAIL_PATTERN.search(line)
        if not match:
            continue
        prefix = "INVALID: " if match.group('invalid') else ""
        details.append(f"{prefix}{match.group('user')} (from {match.group('source')})")
        if len(details) >= MAX_FAILED_LOGIN_DETAILS:
            break
    return details

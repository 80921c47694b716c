"""
Audit Data Model
Host profiles, probe results, audit reports, signals, risk assessments
and schedule triggers
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

CADENCES = ('daily', 'weekly', 'monthly')
# Host labels end up unquoted in cron lines and artifact file names
HOST_NAME_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')

WEEKDAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']


@dataclass(frozen=True)
class SchedulePolicy:
    """Declared audit cadence for a host"""
    cadence: Optional[str] = None
    time: Optional[str] = None
    day: Optional[int] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.cadence and self.time)


@dataclass(frozen=True)
class HostProfile:
    """Connection profile resolved from the host registry"""
    name: str
    address: str
    principal: str
    contact: str
    port: int = 22
    schedule: SchedulePolicy = field(default_factory=SchedulePolicy)
    enabled: bool = True

    def to_dict(self) -> Dict:
        return {
            'hostname': self.address,
            'port': self.port,
            'user': self.principal,
            'email': self.contact,
            'schedule': self.schedule.cadence or '',
            'schedule_time': self.schedule.time or '',
            'enabled': 'true' if self.enabled else 'false',
        }


@dataclass(frozen=True)
class ProbeResult:
    """Output of a single probe, captured as one labelled report section"""
    label: str
    output: str = ''
    succeeded: bool = True


@dataclass(frozen=True)
class AuditReport:
    """Ordered probe results for one host, in execution order"""
    host_name: str
    address: str
    port: int
    principal: str
    generated_at: datetime
    results: Tuple[ProbeResult, ...] = ()

    @property
    def labels(self) -> List[str]:
        return [r.label for r in self.results]

    def result(self, label: str) -> Optional[ProbeResult]:
        for result in self.results:
            if result.label == label:
                return result
        return None

    def section(self, label: str) -> str:
        """Return the output of the first section with this label, or ''"""
        result = self.result(label)
        return result.output if result else ''

    @property
    def failed_probes(self) -> List[str]:
        return [r.label for r in self.results if not r.succeeded]


@dataclass
class Signals:
    """Values extracted from an audit report, used as classifier input"""
    load_average: Optional[float] = None
    failed_login_count: int = 0
    failed_service_count: int = 0
    failed_service_names: List[str] = field(default_factory=list)
    pending_security_update_count: int = 0
    listening_port_summary: str = ''
    memory_usage: str = ''
    listening_port_count: int = 0
    failed_login_details: List[str] = field(default_factory=list)


class RiskTier(str, Enum):
    LOW = 'LOW'
    MEDIUM = 'MEDIUM'
    HIGH = 'HIGH'


@dataclass
class RiskAssessment:
    """Severity tier, additive score and prioritised recommendations"""
    tier: RiskTier = RiskTier.LOW
    score: int = 0
    recommendations: List[str] = field(default_factory=list)
    findings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'tier': self.tier.value,
            'score': self.score,
            'recommendations': list(self.recommendations),
            'findings': list(self.findings),
        }


@dataclass(frozen=True)
class ScheduleTrigger:
    """Cron-equivalent schedule bound to a host"""
    host: str
    minute: str
    hour: str
    day_of_month: str = '*'
    month: str = '*'
    day_of_week: str = '*'

    @property
    def cron_expression(self) -> str:
        return f"{self.minute} {self.hour} {self.day_of_month} {self.month} {self.day_of_week}"

    def describe(self) -> str:
        """Human readable form of the schedule"""
        try:
            time_str = f"{int(self.hour):02d}:{int(self.minute):02d}"
        except ValueError:
            return f"Custom: {self.cron_expression}"

        if self.day_of_month != '*' and self.month == '*' and self.day_of_week == '*':
            return f"Monthly on day {self.day_of_month} at {time_str}"
        if self.day_of_month == '*' and self.month == '*' and self.day_of_week != '*':
            if self.day_of_week.isdigit() and int(self.day_of_week) < 7:
                return f"Weekly on {WEEKDAY_NAMES[int(self.day_of_week)]} at {time_str}"
            return f"Custom: {self.cron_expression}"
        if self.day_of_month == '*' and self.month == '*' and self.day_of_week == '*':
            return f"Daily at {time_str}"
        return f"Custom: {self.cron_expression}"

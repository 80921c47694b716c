"""
Probe Battery
Fixed, ordered catalog of diagnostic commands run against each audited host
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from analyzers.audit_log import AuditLogBuilder
from connectors.transport import Transport
from models import ProbeResult

logger = logging.getLogger(__name__)

FAILURE_PLACEHOLDER = "Command failed or access limited"

AUTH_LOG = '/var/log/auth.log'
# Must exceed the HIGH failed-login threshold or that tier is unreachable
FAILED_LOGIN_WINDOW = 100


@dataclass(frozen=True)
class Probe:
    """A labelled diagnostic command"""
    label: str
    command: str
    category: str


DEFAULT_PROBES = (
    # System identity and performance
    Probe("SYSTEM INFORMATION", "uname -a && hostname && date", "system"),
    Probe("UPTIME AND LOAD", "uptime", "performance"),
    Probe("MEMORY USAGE", "free -h", "performance"),
    Probe("DISK USAGE", "df -h", "performance"),
    Probe("CPU INFO", "grep 'model name' /proc/cpuinfo | head -1", "performance"),

    # Processes
    Probe("TOP PROCESSES BY CPU", "ps aux --sort=-%cpu | head -15", "processes"),
    Probe("TOP PROCESSES BY MEMORY", "ps aux --sort=-%mem | head -15", "processes"),
    Probe("PROCESS COUNT", "ps aux | wc -l", "processes"),

    # Network exposure
    Probe("LISTENING PORTS", "ss -tuln", "network"),
    Probe("NETWORK CONNECTIONS", "ss -tupn | head -20", "network"),
    Probe("FIREWALL STATUS",
          "{ sudo -n ufw status verbose 2>/dev/null || sudo -n iptables -L INPUT 2>/dev/null "
          "|| echo 'Limited firewall access'; } | head -20", "network"),

    # Identity and access
    Probe("USER ACCOUNTS", "grep -E '(bash|sh)$' /etc/passwd", "access"),
    Probe("SUDO USERS", "getent group sudo 2>/dev/null || getent group wheel 2>/dev/null "
          "|| echo 'No sudo group access'", "access"),
    Probe("RECENT LOGINS", "last | head -15", "access"),
    Probe("FAILED LOGIN ATTEMPTS",
          f"{{ sudo -n cat {AUTH_LOG} 2>/dev/null || cat {AUTH_LOG} 2>/dev/null "
          f"|| echo 'No auth log access'; }} | grep -E 'Failed password|No auth log access' "
          f"| tail -{FAILED_LOGIN_WINDOW}", "access"),

    # Service health
    Probe("ACTIVE SERVICES", "systemctl list-units --type=service --state=active --no-pager | head -20",
          "services"),
    Probe("FAILED SERVICES", "systemctl list-units --type=service --state=failed --no-pager", "services"),

    # Patch status
    Probe("SECURITY UPDATES",
          "{ apt list --upgradable 2>/dev/null || echo 'No apt access or no security updates'; } "
          "| grep -i security | head -50", "updates"),

    # SSH hardening
    Probe("SSH CONFIG",
          "sudo -n grep -E '^(PasswordAuthentication|PermitRootLogin|Port|MaxAuthTries|PubkeyAuthentication)' "
          "/etc/ssh/sshd_config 2>/dev/null "
          "|| grep -E '^(PasswordAuthentication|PermitRootLogin|Port|MaxAuthTries|PubkeyAuthentication)' "
          "/etc/ssh/sshd_config 2>/dev/null || echo 'No SSH config access'", "ssh"),

    # Scheduled tasks
    Probe("USER CRON JOBS", "crontab -l 2>/dev/null || echo 'No user cron jobs'", "scheduled"),
    Probe("SYSTEM CRON JOBS",
          "{ sudo -n ls -la /etc/cron.d/ /var/spool/cron/crontabs/ 2>/dev/null || ls -la /etc/cron.d/ 2>/dev/null "
          "|| echo 'Limited cron access'; } | head -10", "scheduled"),

    # Logs
    Probe("RECENT SYSTEM LOGS",
          "sudo -n journalctl -n 20 --no-pager 2>/dev/null || sudo -n tail -20 /var/log/syslog 2>/dev/null "
          "|| echo 'No log access'", "logs"),
    Probe("KERNEL MESSAGES",
          "{ sudo -n dmesg 2>/dev/null || dmesg 2>/dev/null || echo 'No dmesg access'; } | tail -15", "logs"),

    # Filesystem hygiene
    Probe("WORLD WRITABLE FILES",
          "{ find /tmp /var/tmp -type f -perm -002 2>/dev/null || echo 'Limited file system access'; } | head -10",
          "filesystem"),
    Probe("SUID/SGID FILES",
          "{ find /usr -type f \\( -perm -4000 -o -perm -2000 \\) 2>/dev/null "
          "|| echo 'Limited file system access'; } | head -10", "filesystem"),
)


class ProbeBattery:
    """Runs every probe in order through one transport, isolating failures"""

    def __init__(self, transport: Transport, probes: Sequence[Probe] = DEFAULT_PROBES):
        self.transport = transport
        self.probes = tuple(probes)

    def run_probe(self, probe: Probe) -> ProbeResult:
        try:
            output, ok = self.transport.run(probe.command)
        except Exception as e:
            logger.error(f"{probe.label}: transport error: {e}")
            output, ok = str(e), False

        where = " (localhost)" if self.transport.is_local else ""
        if ok:
            logger.info(f"✓ {probe.label} completed{where}")
            return ProbeResult(label=probe.label, output=output, succeeded=True)

        logger.warning(f"⚠ {probe.label} failed or limited access{where}")
        text = output.rstrip('\n')
        text = f"{text}\n{FAILURE_PLACEHOLDER}" if text else FAILURE_PLACEHOLDER
        return ProbeResult(label=probe.label, output=text + '\n', succeeded=False)

    def run(self, builder: AuditLogBuilder) -> AuditLogBuilder:
        """Execute all probes sequentially, adding one result per probe"""
        for probe in self.probes:
            builder.add(self.run_probe(probe))
        return builder

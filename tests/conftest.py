"""
Pytest configuration and fixtures for the multi-host audit tests.
"""

import os
import sys
from datetime import datetime

import pytest

# Add parent directory to path for imports
PARENT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PARENT_DIR not in sys.path:
    sys.path.insert(0, PARENT_DIR)

from connectors.transport import Transport
from models import AuditReport, HostProfile, ProbeResult, SchedulePolicy


UPTIME_OUTPUT = " 10:15:01 up 3 days,  2:03,  1 user,  load average: 0.52, 0.58, 0.59\n"

MEMORY_OUTPUT = (
    "               total        used        free      shared  buff/cache   available\n"
    "Mem:           7.7Gi       2.1Gi       3.0Gi       120Mi       2.6Gi       5.2Gi\n"
    "Swap:          2.0Gi          0B       2.0Gi\n"
)

LISTENING_OUTPUT = (
    "Netid State  Recv-Q Send-Q Local Address:Port  Peer Address:Port Process\n"
    "udp   UNCONN 0      0      127.0.0.53%lo:53         0.0.0.0:*\n"
    "udp   UNCONN 0      0            0.0.0.0:68         0.0.0.0:*\n"
    "tcp   LISTEN 0      4096         0.0.0.0:22         0.0.0.0:*\n"
    "tcp   LISTEN 0      511          0.0.0.0:80         0.0.0.0:*\n"
    "tcp   LISTEN 0      511          0.0.0.0:443        0.0.0.0:*\n"
    "tcp   LISTEN 0      4096            [::]:22            [::]:*\n"
    "tcp   LISTEN 0      80         127.0.0.1:3306       0.0.0.0:*\n"
    "tcp   LISTEN 0      128        127.0.0.1:6379       0.0.0.0:*\n"
)

NO_FAILED_SERVICES_OUTPUT = (
    "  UNIT LOAD ACTIVE SUB DESCRIPTION\n"
    "0 loaded units listed.\n"
)


def failed_login_lines(count, user='root', invalid=False):
    """Auth log lines for `count` failed password attempts"""
    who = f"invalid user {user}" if invalid else user
    return ''.join(
        f"Oct 18 03:1{i % 10}:0{i % 10} web1 sshd[{1000 + i}]: Failed password for {who} "
        f"from 203.0.113.{i + 1} port {40000 + i} ssh2\n"
        for i in range(count)
    )


def failed_services_output(names):
    lines = ["  UNIT                 LOAD   ACTIVE SUB    DESCRIPTION"]
    for name in names:
        lines.append(f"● {name} loaded failed failed {name} daemon")
    lines += [
        "",
        "LOAD   = Reflects whether the unit definition was properly loaded.",
        "ACTIVE = The high-level unit activation state, i.e. generalization of SUB.",
        "SUB    = The low-level unit activation state, values depend on unit type.",
        "",
        f"{len(names)} loaded units listed.",
    ]
    return '\n'.join(lines) + '\n'


def security_update_lines(count):
    return ''.join(
        f"libpkg{i}/jammy-security 1.0.{i}-0ubuntu0.1 amd64 [upgradable from: 1.0.0]\n"
        for i in range(count)
    )


def make_report(sections=None, host_name='web1', address='web1.example.com', port=22):
    """Build an AuditReport with the given label -> output sections"""
    results = tuple(
        ProbeResult(label=label, output=output, succeeded=True)
        for label, output in (sections or {}).items()
    )
    return AuditReport(
        host_name=host_name,
        address=address,
        port=port,
        principal='auditor',
        generated_at=datetime(2026, 10, 18, 9, 30, 0),
        results=results,
    )


class FakeTransport(Transport):
    """Transport returning canned output per command substring"""

    def __init__(self, responses=None, failing=(), raising=(), is_local=False):
        self.responses = responses or {}
        self.failing = tuple(failing)
        self.raising = tuple(raising)
        self.is_local = is_local
        self.commands = []
        self.closed = False

    def run(self, command):
        self.commands.append(command)
        for marker in self.raising:
            if marker in command:
                raise RuntimeError(f"session dropped during {marker}")
        for marker in self.failing:
            if marker in command:
                return "Permission denied\n", False
        for marker, output in self.responses.items():
            if marker in command:
                return output, True
        return "ok\n", True

    def close(self):
        self.closed = True


class MemoryTriggerStore:
    """In-memory trigger store holding tagged triggers plus unrelated entries"""

    def __init__(self, unrelated=None):
        self.entries = {}
        self.unrelated = list(unrelated or [])
        self.replace_calls = 0

    def list_tagged(self, tag):
        return list(self.entries.get(tag, []))

    def replace(self, tag, triggers):
        self.replace_calls += 1
        self.entries[tag] = list(triggers)


class FakeMailer:
    """Records deliveries instead of sending them"""

    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def deliver(self, recipient, subject, body):
        if self.error:
            raise self.error
        self.sent.append((recipient, subject, body))


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def trigger_store():
    return MemoryTriggerStore()


@pytest.fixture
def fake_mailer():
    return FakeMailer()


@pytest.fixture
def sample_profile():
    return HostProfile(
        name='web1',
        address='web1.example.com',
        port=2222,
        principal='auditor',
        contact='ops@example.com',
        schedule=SchedulePolicy(cadence='weekly', time='02:30', day=8),
    )


@pytest.fixture
def hosts_file(tmp_path):
    """Write a hosts configuration with valid, disabled and broken entries."""
    path = tmp_path / 'hosts.conf'
    path.write_text(
        "# audit hosts\n"
        "\n"
        "[lakehouse]\n"
        "hostname=lakehouse.example.com\n"
        "port=15069\n"
        "user=kd\n"
        "email=owner@example.com\n"
        "schedule=weekly\n"
        "schedule_time=02:30\n"
        "schedule_day=1\n"
        "\n"
        "[web1]\n"
        "hostname=web1.example.com\n"
        "user=ubuntu\n"
        "schedule=daily\n"
        "schedule_time=03:05\n"
        "\n"
        "[legacy]\n"
        "hostname=legacy.example.com\n"
        "user=root\n"
        "enabled=false\n"
        "\n"
        "[broken]\n"
        "user=nobody\n"
        "port=22\n"
    )
    return str(path)


@pytest.fixture
def audit_settings(tmp_path, hosts_file):
    from auditor import AuditSettings

    return AuditSettings(
        hosts_config=hosts_file,
        logs_dir=str(tmp_path / 'logs'),
        default_contact='security@example.com',
    )

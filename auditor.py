#!/usr/bin/env python3
"""
Multi-Host Security Audit Tool
Runs a fixed battery of security probes against configured hosts (locally or
over SSH), scores the findings and emails the report. Also manages the cron
schedule that runs those audits.
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Tuple

BASE_DIR = Path(__file__).resolve().parent


# Load .env file if present
def load_dotenv():
    """Load environment variables from .env file"""
    env_file = BASE_DIR / '.env'
    if env_file.exists():
        with open(env_file) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ.setdefault(key.strip(), value.strip())

load_dotenv()

from analyzers.audit_log import AuditLogBuilder
from analyzers.probe_battery import ProbeBattery
from analyzers.risk_classifier import RiskClassifier
from analyzers.signal_extractor import SignalExtractor, DEFAULT_FAILED_LOGIN_EXCLUDE
from batch_processor import BatchAuditor
from connectors.crontab_store import CrontabStore
from connectors.mailer import MailerConfig, ReportMailer
from connectors.transport import LocalIdentity, Transport, resolve_transport
from exceptions import AuditError, ConfigurationError, DeliveryError
from generators.analysis_report import AnalysisReportGenerator
from generators.email_summary import build_email
from host_registry import HostRegistry
from models import AuditReport, HostProfile, RiskAssessment, Signals
from scheduler import AuditScheduler, DEFAULT_TAG

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@dataclass
class AuditSettings:
    """Process-wide settings passed explicitly to the auditor"""
    hosts_config: str = str(BASE_DIR / 'config' / 'hosts.conf')
    logs_dir: str = str(BASE_DIR / 'logs')
    default_contact: str = 'root@localhost'
    analysis_enabled: bool = True
    send_email: bool = True
    connect_timeout: int = 30
    command_timeout: Optional[int] = None
    failed_login_exclude_pattern: str = DEFAULT_FAILED_LOGIN_EXCLUDE
    smtp_host: str = 'localhost'
    smtp_port: int = 25
    smtp_sender: str = 'security-audit@localhost'
    smtp_username: str = ''
    smtp_password: str = ''
    smtp_tls: bool = False
    cron_tag: str = DEFAULT_TAG

    def mailer_config(self) -> MailerConfig:
        return MailerConfig(
            host=self.smtp_host,
            port=self.smtp_port,
            sender=self.smtp_sender,
            username=self.smtp_username or None,
            password=self.smtp_password or None,
            use_tls=self.smtp_tls,
        )


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Settings that may be switched off with null
NULLABLE_SETTINGS = {'command_timeout', 'failed_login_exclude_pattern'}


def _coerce_setting(name: str, value, source: str):
    """Convert a raw settings value to the type of the field's default"""
    default = getattr(AuditSettings(), name)
    if value is None and name in NULLABLE_SETTINGS:
        return None
    try:
        if isinstance(default, bool):
            if isinstance(value, bool):
                return value
            if isinstance(value, str):
                return _env_bool(value)
        elif isinstance(default, int) or name == 'command_timeout':
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            if isinstance(value, str):
                return int(value)
        elif isinstance(value, str):
            return value
    except ValueError:
        pass
    raise ConfigurationError(f"Invalid value for {name} in {source}: {value!r}")


def load_settings(config_path: str = None) -> AuditSettings:
    """Defaults, then AUDIT_* environment variables, then the JSON settings file"""
    settings = AuditSettings()

    for f in fields(AuditSettings):
        env_name = f"AUDIT_{f.name.upper()}"
        env_value = os.getenv(env_name)
        if env_value is None or env_value == '':
            continue
        setattr(settings, f.name, _coerce_setting(f.name, env_value, env_name))

    if config_path:
        if not Path(config_path).exists():
            raise ConfigurationError(f"Settings file {config_path} not found")
        try:
            with open(config_path, 'r') as fh:
                user_config = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read settings file {config_path}: {e}") from e
        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Settings file {config_path} must contain a JSON object")

        known = {f.name for f in fields(AuditSettings)}
        for key, value in user_config.items():
            if key not in known:
                raise ConfigurationError(f"Unknown setting '{key}' in {config_path}")
            setattr(settings, key, _coerce_setting(key, value, config_path))

    return settings


@dataclass
class AuditOutcome:
    """Everything one audit run produced"""
    profile: HostProfile
    report: AuditReport
    audit_log_path: str
    analysis_path: Optional[str] = None
    signals: Optional[Signals] = None
    assessment: Optional[RiskAssessment] = None
    delivered: bool = False
    delivery_error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'host': self.profile.name,
            'address': f"{self.profile.address}:{self.profile.port}",
            'audit_log': self.audit_log_path,
            'analysis': self.analysis_path,
            'risk': self.assessment.to_dict() if self.assessment else None,
            'failed_probes': self.report.failed_probes,
            'delivered': self.delivered,
            'delivery_error': self.delivery_error,
        }


class HostAuditor:
    """Orchestrates transport selection, probes, analysis and delivery for one host"""

    def __init__(self, settings: AuditSettings, mailer: ReportMailer = None,
                 transport_factory: Callable[[HostProfile], Transport] = None):
        self.settings = settings
        self.mailer = mailer or ReportMailer(settings.mailer_config())
        self.transport_factory = transport_factory or self._default_transport
        self.extractor = SignalExtractor(settings.failed_login_exclude_pattern)
        self.classifier = RiskClassifier()

    def _default_transport(self, profile: HostProfile) -> Transport:
        return resolve_transport(profile, self.settings, LocalIdentity.detect())

    def run_audit(self, profile: HostProfile, send_email: bool = None) -> AuditOutcome:
        """Audit one host and archive the log and analysis under logs_dir"""
        if send_email is None:
            send_email = self.settings.send_email

        now = datetime.now()
        stamp = now.strftime('%Y%m%d_%H%M%S')
        logs_dir = self.settings.logs_dir
        audit_log_path = os.path.join(logs_dir, f"{profile.name}_audit_{stamp}.log")
        analysis_path = os.path.join(logs_dir, f"{profile.name}_analysis_{stamp}.log")

        logger.info(f"Starting security audit for {profile.name} ({profile.address}:{profile.port})...")

        builder = AuditLogBuilder(
            host_name=profile.name,
            address=profile.address,
            port=profile.port,
            principal=profile.principal,
            generated_at=now,
            log_path=audit_log_path,
        )
        with self.transport_factory(profile) as transport:
            ProbeBattery(transport).run(builder)
        report = builder.build()

        outcome = AuditOutcome(profile=profile, report=report, audit_log_path=audit_log_path)
        logger.info("Audit data collection completed")

        analysis_text = None
        if self.settings.analysis_enabled:
            outcome.signals = self.extractor.extract(report)
            outcome.assessment = self.classifier.classify(outcome.signals)
            generator = AnalysisReportGenerator(report, outcome.signals, outcome.assessment, now)
            analysis_text = generator.render()
            outcome.analysis_path = generator.generate(analysis_path)

        if send_email:
            subject, body = build_email(report, audit_log_path, analysis_text, outcome.analysis_path, now)
            try:
                self.mailer.deliver(profile.contact, subject, body)
                outcome.delivered = True
            except DeliveryError as e:
                logger.warning(f"Report delivery failed, artifacts kept on disk: {e}")
                outcome.delivery_error = str(e)
                outcome.warnings.append(str(e))

        logger.info(f"✓ Audit completed for {profile.name}")
        logger.info(f"  Audit log: {audit_log_path}")
        if outcome.analysis_path:
            logger.info(f"  Analysis: {outcome.analysis_path}")
        if outcome.delivered:
            logger.info(f"  Email sent to: {profile.contact}")
        return outcome


def find_recent_logs(logs_dir: str, days: int = 7) -> List[Tuple[str, str, datetime]]:
    """Audit and analysis artifacts modified in the last `days` days, newest first"""
    if not os.path.isdir(logs_dir):
        return []
    cutoff = datetime.now() - timedelta(days=days)
    entries = []
    for path in Path(logs_dir).glob('*.log'):
        kind = 'audit' if '_audit_' in path.name else 'analysis' if '_analysis_' in path.name else None
        if not kind:
            continue
        modified = datetime.fromtimestamp(path.stat().st_mtime)
        if modified >= cutoff:
            entries.append((str(path), kind, modified))
    entries.sort(key=lambda e: e[2], reverse=True)
    return entries


def _schedule_command(args) -> str:
    parts = [sys.executable, str(Path(__file__).resolve())]
    if args.settings:
        parts += ['--settings', str(Path(args.settings).resolve())]
    if args.hosts_file:
        parts += ['--hosts-file', str(Path(args.hosts_file).resolve())]
    return ' '.join(parts)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Multi-Host Security Audit Tool',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Audit specific host with parameters
  python3 auditor.py -H server.com -p 2222 -u admin -e admin@example.com

  # Audit using configuration
  python3 auditor.py -c lakehouse

  # Audit all configured hosts
  python3 auditor.py -a

  # List configured hosts
  python3 auditor.py -l

  # Set up scheduled audits / show them / remove one
  python3 auditor.py -s
  python3 auditor.py --status
  python3 auditor.py --remove-host lakehouse
        """
    )

    action_group = parser.add_argument_group('Actions')
    actions = action_group.add_mutually_exclusive_group()
    actions.add_argument('-c', '--config', metavar='HOST_NAME', help='Audit a host from hosts.conf')
    actions.add_argument('-a', '--all', action='store_true', help='Audit all enabled hosts')
    actions.add_argument('-l', '--list', action='store_true', help='List configured hosts')
    actions.add_argument('-s', '--schedule', action='store_true',
                         help='Set up scheduled audits for all enabled hosts')
    actions.add_argument('--schedule-host', metavar='HOST_NAME', help='Set up schedule for a specific host')
    actions.add_argument('--remove-schedule', action='store_true', help='Remove all scheduled audits')
    actions.add_argument('--remove-host', metavar='HOST_NAME', help='Remove the schedule for one host')
    actions.add_argument('--status', action='store_true', help='Show current scheduled audits')
    actions.add_argument('--logs', action='store_true', help='Show audit logs from the last 7 days')

    remote_group = parser.add_argument_group('Manual Audit')
    remote_group.add_argument('-H', '--host', help='Hostname/IP to audit')
    remote_group.add_argument('-p', '--port', type=int, default=22, help='SSH port (default: 22)')
    remote_group.add_argument('-u', '--user', help='SSH username')
    remote_group.add_argument('-e', '--email', help='Email for reports')

    parser.add_argument('--hosts-file', help='Path to hosts configuration file')
    parser.add_argument('--settings', help='Path to JSON settings file')
    parser.add_argument('--no-email', action='store_true', help='Run the audit without sending email')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    return parser


def main(argv: List[str] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = load_settings(args.settings)
        if args.hosts_file:
            settings.hosts_config = args.hosts_file
        if args.no_email:
            settings.send_email = False

        scheduler = AuditScheduler(CrontabStore(_schedule_command(args)), settings.cron_tag)

        if args.list:
            print(HostRegistry.load(settings.hosts_config, settings.default_contact).format_listing())

        elif args.schedule:
            registry = HostRegistry.load(settings.hosts_config, settings.default_contact)
            scheduler.install_all(registry.list_hosts())
            print("✓ Scheduled audits installed\n\nCurrent audit schedule:")
            print('\n'.join(scheduler.status()))

        elif args.schedule_host:
            registry = HostRegistry.load(settings.hosts_config, settings.default_contact)
            trigger = scheduler.install(registry.get_host_profile(args.schedule_host))
            print(f"✓ Schedule added for {args.schedule_host}: {trigger.describe()}")

        elif args.remove_schedule:
            count = scheduler.remove_all()
            print(f"✓ Scheduled audits removed ({count})")

        elif args.remove_host:
            scheduler.remove_host(args.remove_host)
            print(f"✓ Schedule removed for {args.remove_host}")

        elif args.status:
            lines = scheduler.status()
            print("=== SCHEDULED AUDIT STATUS ===\n")
            print('\n'.join(lines) if lines else "No scheduled audits found")
            print(f"\nTotal scheduled audits: {len(lines)}")

        elif args.logs:
            entries = find_recent_logs(settings.logs_dir)
            if not entries:
                print("No recent audit logs found (last 7 days)")
            for path, kind, modified in entries:
                print(f"{kind:<10} {modified.strftime('%Y-%m-%d %H:%M')}  {path}")

        elif args.all:
            registry = HostRegistry.load(settings.hosts_config, settings.default_contact)
            batch = BatchAuditor(HostAuditor(settings), settings.logs_dir)
            results = batch.audit_hosts(registry.list_enabled_hosts(), registry.invalid_hosts)
            report_path = batch.generate_summary_report(results)
            print(f"\n✓ Completed audits for {results['successful']}/{results['total']} hosts")
            print(f"  Summary: {report_path}")
            if results['failed']:
                sys.exit(1)

        elif args.config:
            registry = HostRegistry.load(settings.hosts_config, settings.default_contact)
            HostAuditor(settings).run_audit(registry.get_host_profile(args.config))

        elif args.host and args.user:
            profile = HostProfile(
                name='manual',
                address=args.host,
                port=args.port,
                principal=args.user,
                contact=args.email or settings.default_contact,
            )
            HostAuditor(settings).run_audit(profile)

        else:
            parser.print_help()
            print("\nError: Must specify either --config HOST or --host/--user parameters")
            sys.exit(1)

    except AuditError as e:
        logger.error(str(e))
        sys.exit(1)
    except OSError as e:
        logger.error(f"Audit failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()

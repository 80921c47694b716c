"""Command transports and external service connectors package"""
from .transport import Transport, LocalIdentity, resolve_transport
from .local_executor import LocalExecutor
from .ssh_executor import SSHExecutor
from .crontab_store import CrontabStore
from .mailer import ReportMailer

__all__ = [
    'Transport',
    'LocalIdentity',
    'resolve_transport',
    'LocalExecutor',
    'SSHExecutor',
    'CrontabStore',
    'ReportMailer'
]

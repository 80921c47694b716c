"""
Transport Selection
Decides whether probes run on this machine or over SSH, once per host
"""

from __future__ import annotations

import logging
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import psutil

logger = logging.getLogger(__name__)

LOOPBACK_NAMES = ('localhost', '127.0.0.1')


class Transport(ABC):
    """Runs a shell command and reports (output, succeeded)"""

    is_local = False

    @abstractmethod
    def run(self, command: str) -> Tuple[str, bool]:
        """Execute a command; failures come back as (error text, False)"""

    def close(self) -> None:
        """Release any held connection"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


@dataclass(frozen=True)
class LocalIdentity:
    """Names and primary address of the machine running the audit"""
    hostname: str
    fqdn: str
    primary_ip: Optional[str] = None

    @classmethod
    def detect(cls) -> 'LocalIdentity':
        hostname = socket.gethostname()
        try:
            fqdn = socket.getfqdn() or hostname
        except OSError:
            fqdn = hostname
        return cls(hostname=hostname, fqdn=fqdn, primary_ip=_primary_ipv4())


def _primary_ipv4() -> Optional[str]:
    """First non-loopback IPv4 address on any interface that is up"""
    try:
        stats = psutil.net_if_stats()
        for name, addrs in psutil.net_if_addrs().items():
            if name in stats and not stats[name].isup:
                continue
            for addr in addrs:
                if addr.family == socket.AF_INET and not addr.address.startswith('127.'):
                    return addr.address
    except (OSError, psutil.Error) as e:
        logger.debug(f"Could not enumerate network interfaces: {e}")
    return None


def resolve_ipv4(address: str) -> Optional[str]:
    try:
        infos = socket.getaddrinfo(address, None, socket.AF_INET, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError, OSError):
        return None
    return infos[0][4][0] if infos else None


def is_local_address(address: str, identity: LocalIdentity,
                     resolver: Callable[[str], Optional[str]] = resolve_ipv4) -> bool:
    """Whether an address refers to the machine running the audit"""
    if address in LOOPBACK_NAMES:
        return True
    if address in (identity.hostname, identity.fqdn):
        return True
    if identity.primary_ip:
        resolved = resolver(address)
        if resolved and resolved == identity.primary_ip:
            logger.info(f"{address} resolves to {resolved} - treating as localhost")
            return True
    return False


def resolve_transport(profile, settings, identity: LocalIdentity = None,
                      resolver: Callable[[str], Optional[str]] = resolve_ipv4) -> Transport:
    """Pick the local or SSH transport for a host; decided once per audit"""
    from connectors.local_executor import LocalExecutor, LocalConfig
    from connectors.ssh_executor import SSHExecutor, SSHConfig

    identity = identity or LocalIdentity.detect()
    if is_local_address(profile.address, identity, resolver):
        logger.info(f"Detected localhost ({profile.address}) - running commands locally without SSH")
        return LocalExecutor(LocalConfig(timeout=settings.command_timeout))

    return SSHExecutor(SSHConfig(
        hostname=profile.address,
        username=profile.principal,
        port=profile.port,
        timeout=settings.connect_timeout,
    ))

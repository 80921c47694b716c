"""
SSH Executor
Runs probe commands on remote servers over an IPv4 SSH connection
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Optional, Tuple

import paramiko

from connectors.transport import Transport
from exceptions import ProbeExecutionError

logger = logging.getLogger(__name__)


@dataclass
class SSHConfig:
    """SSH connection configuration"""
    hostname: str
    username: str
    port: int = 22
    timeout: int = 30
    strict_host_keys: bool = True


class SSHExecutor(Transport):
    """Executes commands on a remote server via SSH with key-based, non-interactive auth"""

    def __init__(self, config: SSHConfig):
        self.config = config
        self.client = None
        self.connected = False
        self._connect_error: Optional[str] = None

    def connect(self) -> None:
        """Open the SSH session; raises ProbeExecutionError on failure"""
        sock = None
        try:
            sock = self._open_ipv4_socket()

            self.client = paramiko.SSHClient()
            self.client.load_system_host_keys()
            if self.config.strict_host_keys:
                self.client.set_missing_host_key_policy(paramiko.RejectPolicy())
            else:
                self.client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

            self.client.connect(
                hostname=self.config.hostname,
                port=self.config.port,
                username=self.config.username or None,
                sock=sock,
                timeout=self.config.timeout,
                banner_timeout=self.config.timeout,
                auth_timeout=self.config.timeout,
                allow_agent=True,
                look_for_keys=True,
            )
            self.connected = True
            logger.info(f"Connected to {self.config.hostname}:{self.config.port}")

        except paramiko.AuthenticationException as e:
            self._abort(sock)
            raise ProbeExecutionError(f"Authentication failed for {self.config.hostname}: {e}") from e
        except (socket.timeout, TimeoutError) as e:
            self._abort(sock)
            raise ProbeExecutionError(f"Connection timeout to {self.config.hostname}") from e
        except (paramiko.SSHException, OSError) as e:
            self._abort(sock)
            raise ProbeExecutionError(f"Failed to connect to {self.config.hostname}: {e}") from e

    def _open_ipv4_socket(self) -> socket.socket:
        infos = socket.getaddrinfo(
            self.config.hostname, self.config.port, socket.AF_INET, socket.SOCK_STREAM
        )
        if not infos:
            raise OSError(f"No IPv4 address for {self.config.hostname}")
        family, socktype, proto, _, sockaddr = infos[0]
        sock = socket.socket(family, socktype, proto)
        sock.settimeout(self.config.timeout)
        try:
            sock.connect(sockaddr)
        except OSError:
            sock.close()
            raise
        # Connect phase is bounded; command execution is not
        sock.settimeout(None)
        return sock

    def _abort(self, sock: Optional[socket.socket]) -> None:
        if self.client:
            self.client.close()
            self.client = None
        if sock:
            sock.close()
        self.connected = False

    def run(self, command: str) -> Tuple[str, bool]:
        """Execute a command on the remote server"""
        if not self.connected:
            if self._connect_error:
                return self._connect_error, False
            try:
                self.connect()
            except ProbeExecutionError as e:
                logger.error(str(e))
                self._connect_error = str(e)
                return self._connect_error, False

        try:
            transport = self.client.get_transport()
            if transport is None or not transport.is_active():
                return f"SSH session to {self.config.hostname} is not active", False
            channel = transport.open_session()
            # Merge stderr before the command starts so no early output is lost
            channel.set_combine_stderr(True)
            channel.exec_command(command)
            output = channel.makefile('rb').read().decode('utf-8', errors='ignore')
            exit_code = channel.recv_exit_status()
            channel.close()
            return output, exit_code == 0
        except (paramiko.SSHException, OSError) as e:
            logger.error(f"Command execution failed: {e}")
            return str(e), False

    def close(self) -> None:
        """Close the SSH connection"""
        if self.client:
            self.client.close()
            self.client = None
            if self.connected:
                logger.info(f"Disconnected from {self.config.hostname}")
        self.connected = False

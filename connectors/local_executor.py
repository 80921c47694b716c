"""
Local Executor
Runs probe commands through the local shell when the audited host is this machine
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional, Tuple

from connectors.transport import Transport

logger = logging.getLogger(__name__)


@dataclass
class LocalConfig:
    """Local execution configuration"""
    shell: str = 'bash'
    timeout: Optional[int] = None


class LocalExecutor(Transport):
    """Executes commands locally on the current system"""

    is_local = True

    def __init__(self, config: LocalConfig = None):
        self.config = config or LocalConfig()

    def run(self, command: str) -> Tuple[str, bool]:
        """Execute a command locally, stdout and stderr captured together"""
        try:
            result = subprocess.run(
                [self.config.shell, '-c', command],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=self.config.timeout,
                text=True,
                errors='ignore'
            )
            return result.stdout, result.returncode == 0

        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out: {command[:50]}...")
            return "Command timed out", False
        except OSError as e:
            logger.error(f"Command execution failed: {e}")
            return str(e), False

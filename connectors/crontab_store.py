"""
Crontab Store
Persists tagged schedule triggers in the invoking user's crontab
"""

from __future__ import annotations

import logging
import re
import subprocess
from typing import List, Sequence

from exceptions import ConfigurationError
from models import ScheduleTrigger

logger = logging.getLogger(__name__)

ENTRY_PATTERN = re.compile(
    r'^(?P<minute>\S+)\s+(?P<hour>\S+)\s+(?P<dom>\S+)\s+(?P<month>\S+)\s+(?P<dow>\S+)\s+'
    r'.*#\s*(?P<tag>[^:#]+):\s*(?P<host>\S+)\s*$'
)


class CrontabStore:
    """Trigger store backed by `crontab -l` / `crontab -`.

    Assumes a single invoker: the table is read, filtered and written back
    in one `crontab -` call, with no locking between the read and the write.
    """

    def __init__(self, command: str, crontab_bin: str = 'crontab'):
        self.command = command
        self.crontab_bin = crontab_bin

    def _read_lines(self) -> List[str]:
        try:
            result = subprocess.run(
                [self.crontab_bin, '-l'],
                capture_output=True,
                text=True,
                timeout=30
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ConfigurationError(f"Could not read crontab: {e}") from e

        # crontab -l exits non-zero when the user has no table yet
        if result.returncode != 0:
            logger.debug(f"No existing crontab: {result.stderr.strip()}")
            return []
        return result.stdout.splitlines()

    def _write_lines(self, lines: Sequence[str]) -> None:
        content = '\n'.join(lines) + '\n' if lines else ''
        try:
            result = subprocess.run(
                [self.crontab_bin, '-'],
                input=content,
                capture_output=True,
                text=True,
                timeout=30
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ConfigurationError(f"Could not install crontab: {e}") from e
        if result.returncode != 0:
            raise ConfigurationError(f"crontab rejected the new table: {result.stderr.strip()}")

    @staticmethod
    def _parse(line: str, tag: str):
        match = ENTRY_PATTERN.match(line.strip())
        if not match or match.group('tag').strip() != tag:
            return None
        return ScheduleTrigger(
            host=match.group('host'),
            minute=match.group('minute'),
            hour=match.group('hour'),
            day_of_month=match.group('dom'),
            month=match.group('month'),
            day_of_week=match.group('dow'),
        )

    def format_entry(self, trigger: ScheduleTrigger, tag: str) -> str:
        return (
            f"{trigger.cron_expression} {self.command} -c {trigger.host} "
            f">/dev/null 2>&1 # {tag}: {trigger.host}"
        )

    def list_tagged(self, tag: str) -> List[ScheduleTrigger]:
        triggers = []
        for line in self._read_lines():
            trigger = self._parse(line, tag)
            if trigger:
                triggers.append(trigger)
        return triggers

    def replace(self, tag: str, triggers: Sequence[ScheduleTrigger]) -> None:
        """Swap every entry carrying the tag for the given triggers"""
        kept = [line for line in self._read_lines() if not self._parse(line, tag)]
        entries = [self.format_entry(t, tag) for t in triggers]
        self._write_lines(kept + entries)
        logger.info(f"Crontab updated: {len(entries)} '{tag}' entries, {len(kept)} other lines kept")

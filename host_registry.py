"""
Host Registry
Loads host connection profiles from the sectioned hosts configuration
"""

import configparser
import logging
import os
import re
from typing import Dict, List

from exceptions import ConfigurationError, HostNotFoundError
from models import CADENCES, HOST_NAME_PATTERN, HostProfile, SchedulePolicy

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')
BOOLEAN_VALUES = {
    'true': True, 'yes': True, '1': True, 'on': True,
    'false': False, 'no': False, '0': False, 'off': False,
}


class HostRegistry:
    """Typed mapping of host name to HostProfile, loaded once per process"""

    KEYS = ['hostname', 'port', 'user', 'email', 'schedule', 'schedule_time', 'schedule_day', 'enabled']

    def __init__(self, profiles: Dict[str, HostProfile] = None, errors: Dict[str, ConfigurationError] = None):
        self._profiles = profiles or {}
        self._errors = errors or {}

    @classmethod
    def load(cls, config_path: str, default_contact: str) -> 'HostRegistry':
        """Parse the hosts file, validating every section"""
        if not os.path.isfile(config_path):
            raise ConfigurationError(f"Configuration file {config_path} not found")

        parser = configparser.ConfigParser(interpolation=None, default_section='__defaults__')
        try:
            with open(config_path, 'r') as f:
                parser.read_file(f)
        except configparser.Error as e:
            raise ConfigurationError(f"Could not parse {config_path}: {e}") from e

        profiles = {}
        errors = {}
        for name in parser.sections():
            try:
                profiles[name] = cls._build_profile(name, parser[name], default_contact)
            except ConfigurationError as e:
                logger.warning(f"Invalid host entry '{name}': {e}")
                errors[name] = e

        logger.info(f"Loaded {len(profiles)} hosts from {config_path}")
        return cls(profiles, errors)

    @staticmethod
    def _build_profile(name: str, section: configparser.SectionProxy, default_contact: str) -> HostProfile:
        if not HOST_NAME_PATTERN.match(name):
            raise ConfigurationError(
                f"Host name '{name}' may only contain letters, digits, '.', '_' and '-'"
            )

        address = section.get('hostname', '').strip()
        if not address:
            raise ConfigurationError(f"Host '{name}' has no hostname")

        port_value = section.get('port', '').strip() or '22'
        if not port_value.isdigit() or not 0 < int(port_value) < 65536:
            raise ConfigurationError(f"Host '{name}' has invalid port '{port_value}'")

        enabled_value = section.get('enabled', '').strip().lower() or 'true'
        if enabled_value not in BOOLEAN_VALUES:
            raise ConfigurationError(f"Host '{name}' has invalid enabled flag '{enabled_value}'")

        return HostProfile(
            name=name,
            address=address,
            port=int(port_value),
            principal=section.get('user', '').strip(),
            contact=section.get('email', '').strip() or default_contact,
            schedule=HostRegistry._build_schedule(name, section),
            enabled=BOOLEAN_VALUES[enabled_value],
        )

    @staticmethod
    def _build_schedule(name: str, section: configparser.SectionProxy) -> SchedulePolicy:
        cadence = section.get('schedule', '').strip().lower() or None
        if cadence and cadence not in CADENCES:
            raise ConfigurationError(f"Host '{name}' has invalid schedule '{cadence}'")

        time_value = section.get('schedule_time', '').strip() or None
        if time_value:
            match = TIME_PATTERN.match(time_value)
            if not match or int(match.group(1)) > 23 or int(match.group(2)) > 59:
                raise ConfigurationError(f"Host '{name}' has invalid schedule_time '{time_value}'")

        day_value = section.get('schedule_day', '').strip()
        if day_value and not day_value.isdigit():
            raise ConfigurationError(f"Host '{name}' has invalid schedule_day '{day_value}'")

        return SchedulePolicy(
            cadence=cadence,
            time=time_value,
            day=int(day_value) if day_value else None,
        )

    def get_host_profile(self, name: str) -> HostProfile:
        if name in self._profiles:
            return self._profiles[name]
        if name in self._errors:
            raise self._errors[name]
        raise HostNotFoundError(name)

    def list_hosts(self) -> List[HostProfile]:
        return list(self._profiles.values())

    def list_enabled_hosts(self) -> List[HostProfile]:
        return [p for p in self._profiles.values() if p.enabled]

    @property
    def invalid_hosts(self) -> Dict[str, ConfigurationError]:
        return dict(self._errors)

    def format_listing(self) -> str:
        """Render all configured hosts for the --list command"""
        lines = ["Configured Hosts:", "=================="]
        for profile in self._profiles.values():
            lines.append("")
            lines.append(f"Host: {profile.name}")
            for key, value in profile.to_dict().items():
                if value != '':
                    lines.append(f"  {key:<15}: {value}")
        for name, error in self._errors.items():
            lines.append("")
            lines.append(f"Host: {name}")
            lines.append(f"  {'error':<15}: {error}")
        lines.append("")
        return '\n'.join(lines)

"""
Audit Scheduler
Maps host cadences to recurring triggers and keeps exactly one trigger per
host in the trigger store
"""

import logging
from typing import Dict, List, Protocol, Sequence

from exceptions import ConfigurationError
from models import HOST_NAME_PATTERN, HostProfile, ScheduleTrigger

logger = logging.getLogger(__name__)

DEFAULT_TAG = 'multihost audit'


class TriggerStore(Protocol):
    def list_tagged(self, tag: str) -> List[ScheduleTrigger]: ...

    def replace(self, tag: str, triggers: Sequence[ScheduleTrigger]) -> None: ...


def build_trigger(profile: HostProfile) -> ScheduleTrigger:
    """Translate a host's declared cadence into a cron-style trigger"""
    if not HOST_NAME_PATTERN.match(profile.name):
        raise ConfigurationError(f"Host name '{profile.name}' cannot be used in a schedule entry")
    policy = profile.schedule
    if not policy.cadence or not policy.time:
        raise ConfigurationError(f"Host {profile.name} is missing schedule configuration")

    hour, _, minute = policy.time.partition(':')
    if not hour.isdigit() or not minute.isdigit():
        raise ConfigurationError(f"Host {profile.name} has invalid schedule_time '{policy.time}'")
    hour, minute = str(int(hour)), str(int(minute))

    if policy.cadence == 'daily':
        return ScheduleTrigger(host=profile.name, minute=minute, hour=hour)

    if policy.day is None:
        raise ConfigurationError(f"Host {profile.name} needs schedule_day for a {policy.cadence} schedule")

    if policy.cadence == 'weekly':
        return ScheduleTrigger(host=profile.name, minute=minute, hour=hour, day_of_week=str(policy.day % 7))
    if policy.cadence == 'monthly':
        if not 1 <= policy.day <= 31:
            raise ConfigurationError(f"Host {profile.name} has invalid day of month {policy.day}")
        return ScheduleTrigger(host=profile.name, minute=minute, hour=hour, day_of_month=str(policy.day))

    raise ConfigurationError(f"Invalid schedule: {policy.cadence}")


class AuditScheduler:
    """Installs and removes tagged triggers without touching unrelated entries.

    Every change is a single read-modify-replace against the store; callers
    must not run two schedulers against the same store concurrently.
    """

    def __init__(self, store: TriggerStore, tag: str = DEFAULT_TAG):
        self.store = store
        self.tag = tag

    def installed(self) -> List[ScheduleTrigger]:
        return self.store.list_tagged(self.tag)

    def install(self, profile: HostProfile) -> ScheduleTrigger:
        """Upsert the trigger for one host"""
        if not profile.enabled:
            raise ConfigurationError(f"Host {profile.name} is not enabled")
        trigger = build_trigger(profile)
        others = [t for t in self.installed() if t.host != profile.name]
        self.store.replace(self.tag, others + [trigger])
        logger.info(f"Scheduled {profile.name}: {trigger.describe()}")
        return trigger

    def install_all(self, profiles: Sequence[HostProfile]) -> Dict[str, ScheduleTrigger]:
        """Upsert triggers for every enabled host that declares a schedule"""
        new_triggers = {}
        for profile in profiles:
            if not profile.enabled or not profile.schedule.is_configured:
                logger.debug(f"Skipping {profile.name}: not enabled or no schedule")
                continue
            try:
                new_triggers[profile.name] = build_trigger(profile)
            except ConfigurationError as e:
                logger.error(str(e))

        if not new_triggers:
            raise ConfigurationError("No enabled hosts with schedule configuration found")

        others = [t for t in self.installed() if t.host not in new_triggers]
        self.store.replace(self.tag, others + list(new_triggers.values()))
        logger.info(f"Scheduled {len(new_triggers)} hosts for automated audits")
        return new_triggers

    def remove_host(self, name: str) -> bool:
        """Delete the host's trigger; returns False when none was installed"""
        current = self.installed()
        remaining = [t for t in current if t.host != name]
        if len(remaining) == len(current):
            logger.info(f"No scheduled audit found for {name}")
            return False
        self.store.replace(self.tag, remaining)
        logger.info(f"Schedule removed for {name}")
        return True

    def remove_all(self) -> int:
        current = self.installed()
        self.store.replace(self.tag, [])
        logger.info(f"Removed {len(current)} scheduled audits")
        return len(current)

    def status(self) -> List[str]:
        return [f"{t.host:<20}: {t.describe()}" for t in self.installed()]

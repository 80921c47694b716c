"""
Audit Exceptions
Error taxonomy shared by the registry, transports, scheduler and mailer
"""


class AuditError(Exception):
    """Base class for all audit tool errors"""


class ConfigurationError(AuditError):
    """Missing or invalid host entry, settings or schedule fields"""


class HostNotFoundError(ConfigurationError):
    """Requested host has no section in the registry"""

    def __init__(self, name: str):
        super().__init__(f"Host configuration '{name}' not found")
        self.name = name


class ProbeExecutionError(AuditError):
    """A probe command failed or timed out"""


class DeliveryError(AuditError):
    """The report could not be handed to the mail server"""

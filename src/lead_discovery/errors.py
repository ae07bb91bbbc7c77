"""Custom exceptions for the lead discovery domain."""


class LeadDiscoveryError(Exception):
    """Base exception for this project."""


class ConfigError(LeadDiscoveryError):
    """Raised when runtime configuration or call options are invalid."""


class ProviderError(LeadDiscoveryError):
    """Raised when a third-party provider call fails."""


class StorageError(LeadDiscoveryError):
    """Raised when a contact, company or queue record cannot be found or written."""

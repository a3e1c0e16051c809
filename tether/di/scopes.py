"""
Scope definitions.
"""

from enum import Enum


class ServiceScope(str, Enum):
    """Service lifetime scopes."""

    SINGLETON = "singleton"  # One instance per app lifecycle
    APP = "app"              # Alias for singleton
    REQUEST = "request"      # One instance per request-scoped container
    TRANSIENT = "transient"  # New instance every resolve


# Scopes that cache instances in the resolving container
CACHEABLE_SCOPES = frozenset((ServiceScope.SINGLETON.value, ServiceScope.APP.value, ServiceScope.REQUEST.value))

# Scopes always delegated to the root container
ROOT_SCOPES = frozenset((ServiceScope.SINGLETON.value, ServiceScope.APP.value))

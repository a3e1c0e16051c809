"""
Tether Faults - Domain-specific fault types.

Provides concrete fault classes for the domains the binder touches:
- CONFIG faults
- ROUTING faults
- FLOW faults
"""

from typing import Any, Optional
from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            public=False,
            metadata=metadata,
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# ROUTING Faults
# ============================================================================

class RoutingFault(Fault):
    """Base class for routing faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        public: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.ROUTING,
            severity=severity,
            public=public,
            metadata=metadata,
        )


class RouteNotFoundFault(RoutingFault):
    """Route not found."""

    def __init__(self, path: str, method: str, **kwargs):
        super().__init__(
            code="ROUTE_NOT_FOUND",
            message=f"Route not found: {method} {path}",
            severity=Severity.WARN,
            metadata={"path": path, "method": method, **kwargs.get("metadata", {})},
        )


class PatternInvalidFault(RoutingFault):
    """Route pattern is invalid."""

    def __init__(self, pattern: str, reason: str, **kwargs):
        super().__init__(
            code="PATTERN_INVALID",
            message=f"Invalid route pattern '{pattern}': {reason}",
            severity=Severity.FATAL,
            public=False,
            metadata={"pattern": pattern, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# FLOW Faults
# ============================================================================

class FlowFault(Fault):
    """Base class for flow execution faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.FLOW,
            severity=severity,
            public=public,
            metadata=metadata,
        )


class HandlerNotFoundFault(FlowFault):
    """Controller has no callable for the bound method key."""

    def __init__(self, controller: str, key: str, **kwargs):
        super().__init__(
            code="HANDLER_NOT_FOUND",
            message=f"Controller '{controller}' has no handler method '{key}'",
            metadata={"controller": controller, "key": key, **kwargs.get("metadata", {})},
        )


class ResponseAlreadySentFault(FlowFault):
    """A handler tried to write a response that was already sent."""

    def __init__(self, path: str, **kwargs):
        super().__init__(
            code="RESPONSE_ALREADY_SENT",
            message=f"Response for '{path}' was already sent",
            severity=Severity.WARN,
            metadata={"path": path, **kwargs.get("metadata", {})},
        )

"""
DI-specific error types with rich diagnostics.

DI errors are faults in the ``di`` domain, so the final error handler answers
them with a 500 and their code, keeping the message private.
"""

from typing import Any, List, Optional

from ..faults import Fault, FaultDomain


class DIError(Fault):
    """Base exception for DI errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "DI_ERROR",
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.DI,
            public=False,
            metadata=metadata,
        )


class ProviderNotFoundError(DIError):
    """Provider not found for requested token."""

    def __init__(
        self,
        token: str,
        tag: Optional[str] = None,
        candidates: Optional[List[str]] = None,
    ):
        self.token = token
        self.tag = tag
        self.candidates = candidates or []

        msg = f"No provider found for token={token}"
        if tag:
            msg += f" (tag={tag})"

        if candidates:
            msg += "\n\nCandidates found:"
            for candidate in candidates:
                msg += f"\n  - {candidate}"
            msg += "\n\nSuggested fixes:"
            msg += f"\n  - Register a provider for {token}"
            msg += "\n  - Check the tag used at registration"

        super().__init__(
            msg,
            code="PROVIDER_NOT_FOUND",
            metadata={"token": token, "tag": tag, "candidates": self.candidates},
        )

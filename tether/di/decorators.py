"""
Injection markers.
"""

from dataclasses import dataclass
from typing import Optional, Type


@dataclass
class Inject:
    """
    Injection metadata marker.

    Usage:
        def __init__(self, repo: Annotated[UserRepo, Inject(tag="sql")]):
            ...
    """

    token: Optional[Type | str] = None
    tag: Optional[str] = None
    optional: bool = False

    # Internal marker for provider introspection
    _inject_token: Optional[Type | str] = None
    _inject_tag: Optional[str] = None
    _inject_optional: bool = False

    def __post_init__(self):
        self._inject_token = self.token
        self._inject_tag = self.tag
        self._inject_optional = self.optional


def inject(
    token: Optional[Type | str] = None,
    *,
    tag: Optional[str] = None,
    optional: bool = False,
) -> Inject:
    """
    Create injection metadata.

    Args:
        token: Optional explicit token (inferred from type hint if None)
        tag: Optional tag for disambiguation
        optional: If True, inject None if provider not found
    """
    return Inject(token=token, tag=tag, optional=optional)

"""
Registry kinds shared by the container and the binder.
"""


class TYPE:
    """Container kinds (string tokens grouping providers)."""

    CONTROLLER = "tether.Controller"

"""Fork maintenance tooling: upstream sync and Windows installer builds."""

__version__ = "0.3.0"

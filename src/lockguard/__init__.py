"""lockguard - guarded yarn installs with risk analysis and sandboxed builds."""

__version__ = "0.4.0"

__all__ = ["__version__"]

"""orgpass - organization, role and invitation management."""

__version__ = "0.1.0"

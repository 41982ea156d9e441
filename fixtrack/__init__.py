"""Issue status workflow engine for a multi-tenant support bot."""

__version__ = "1.0.0"

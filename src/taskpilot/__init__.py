"""taskpilot - plan, confirm and run natural-language requests."""

__version__ = "0.1.0"

"""Service-charge demand lifecycle: generation, payments, penalties and reminders."""

__version__ = "0.1.0"

"""Command-line entry points for scheduled jobs."""

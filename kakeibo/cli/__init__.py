"""Command-line entry points for kakeibo."""

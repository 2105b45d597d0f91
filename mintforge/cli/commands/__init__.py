"""Subcommands of the ``mintforge`` CLI, one module per command."""

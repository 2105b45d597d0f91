"""Mintforge CLI: Typer-based command-line interface.

Provides the ``mintforge`` command with subcommands to upload a
collection into its registry, verify the registry against the cache and
show upload progress.

All output uses Rich for formatted terminal display.
"""

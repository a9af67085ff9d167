"""buildvault CLI — Typer-based command-line interface.

Provides the ``buildvault`` command with subcommands for fetching and
hashing artifacts, materializing dependency trees and maintaining artifact
listings. All output uses Rich for formatted terminal display.
"""

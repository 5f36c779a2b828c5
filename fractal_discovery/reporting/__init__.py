"""
fractal_discovery.reporting — Terminal formatting and JSON export.

Modules:
  formatters — ASCII tables for Typer CLI commands.
  export     — JSON export of discovery results.
"""

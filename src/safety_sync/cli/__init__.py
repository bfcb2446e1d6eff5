"""Command-line interface for the safety sync application."""

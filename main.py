#!/usr/bin/env python3
"""
floatwatch
Main entry point with CLI interface.
"""

from floatwatch.cli import cli

if __name__ == "__main__":
    cli()

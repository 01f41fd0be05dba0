"""Main entry point for Aegis CLI.

Usage:
    python -m aegis.main --help
    aegis --help  # If installed via pip/uv
"""

from aegis.cli import main

if __name__ == "__main__":
    main()

"""Main entry point for the audiovault CLI.

Usage:
    python -m audiovault --help
    audiovault --help  # If installed via pip/uv
"""

from audiovault.cli import main

if __name__ == "__main__":
    main()

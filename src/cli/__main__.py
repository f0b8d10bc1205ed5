"""
Entry point for running the CLI as a module.

Usage:
    python -m src.cli next
    python -m src.cli stats
    python -m src.cli --help
"""
from .main import main

if __name__ == "__main__":
    main()

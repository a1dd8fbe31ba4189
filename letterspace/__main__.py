"""
Entry point for running Letterspace as a module.

Usage:
    python -m letterspace --help
    python -m letterspace docs list
    python -m letterspace translate <id> --language Spanish
"""
from .cli import app


if __name__ == "__main__":
    app()

"""
Module entrypoint.

Allows running the tool with `python -m contact_sheet`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())

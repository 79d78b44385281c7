"""Module entrypoint for `python -m chatterm`."""

from __future__ import annotations

from chatterm.client.client import cli


if __name__ == "__main__":
    cli()

"""Entry point for python -m lightpanda."""

from .cli import main

main()

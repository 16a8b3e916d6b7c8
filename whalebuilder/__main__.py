"""Entry point for ``python -m whalebuilder``."""

from whalebuilder.cli import run

if __name__ == "__main__":
    run()

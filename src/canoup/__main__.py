"""Allow running canoup with ``python -m canoup``."""

from canoup.cli import cli_main

if __name__ == "__main__":
    cli_main()

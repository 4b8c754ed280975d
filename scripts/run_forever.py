"""Script entry point for continuous mode."""
from __future__ import annotations

import sys

from trendtiers.cli import main as cli_main


def main() -> None:
    cli_main(["forever", *sys.argv[1:]])


if __name__ == "__main__":
    main()

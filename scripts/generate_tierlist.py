"""Script entry point for generating one new tier list."""
from __future__ import annotations

import sys

from trendtiers.cli import main as cli_main


def main() -> None:
    cli_main(["generate", *sys.argv[1:]])


if __name__ == "__main__":
    main()

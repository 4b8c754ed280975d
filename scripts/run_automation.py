"""Script entry point for the full automation run."""
from __future__ import annotations

import sys

from trendtiers.cli import main as cli_main


def main() -> None:
    cli_main(["run", *sys.argv[1:]])


if __name__ == "__main__":
    main()

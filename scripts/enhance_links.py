"""Script entry point for normalizing affiliate links."""
from __future__ import annotations

import sys

from trendtiers.cli import main as cli_main


def main() -> None:
    cli_main(["links", *sys.argv[1:]])


if __name__ == "__main__":
    main()

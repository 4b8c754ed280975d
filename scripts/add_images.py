"""Script entry point for adding product images to tier lists."""
from __future__ import annotations

import sys

from trendtiers.cli import main as cli_main


def main() -> None:
    cli_main(["images", *sys.argv[1:]])


if __name__ == "__main__":
    main()

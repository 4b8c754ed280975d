"""Script entry point for the image coverage report."""
from __future__ import annotations

import sys

from trendtiers.cli import main as cli_main


def main() -> None:
    cli_main(["validate-images", *sys.argv[1:]])


if __name__ == "__main__":
    main()

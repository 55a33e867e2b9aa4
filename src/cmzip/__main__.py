"""Allow running as python -m cmzip."""

from cmzip.cli import app


def main() -> None:
    app(prog_name="cmzip")


main()

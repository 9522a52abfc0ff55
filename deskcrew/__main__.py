"""Entry point for running DeskCrew as a module."""

from deskcrew.cli import app


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()

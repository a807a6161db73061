"""Entry point for running gitbridge as a module."""

from gitbridge.cli import app


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()

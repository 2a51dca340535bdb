"""Allow ``python -m vingest`` to launch the CLI."""

from vingest.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    main()

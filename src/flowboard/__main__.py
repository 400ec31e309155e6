"""Allow ``python -m flowboard``."""

from flowboard.cli import main

if __name__ == "__main__":
    main()

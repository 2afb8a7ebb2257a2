"""Allow ``python -m soulycore``."""

from soulycore.cli import main

if __name__ == "__main__":
    main()

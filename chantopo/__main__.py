"""Allow ``python -m chantopo``."""

from chantopo.cli import main

if __name__ == "__main__":
    main()

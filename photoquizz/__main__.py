"""Entry point for python -m photoquizz."""

import sys

from photoquizz.cli.main import main


if __name__ == "__main__":
    sys.exit(main())

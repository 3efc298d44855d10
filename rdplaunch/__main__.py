"""Allow ``python -m rdplaunch``."""

import sys

from rdplaunch import cli

if __name__ == "__main__":
    sys.exit(cli.main())

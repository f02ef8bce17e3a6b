"""Allow ``python -m weread_export``."""

import sys

from weread_export.cli import entry_point

if __name__ == "__main__":
    sys.exit(entry_point())

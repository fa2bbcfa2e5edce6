"""Compatibility entry point for ``python -m cyverify``."""

import sys

from cyverify.main import main

if __name__ == "__main__":
    sys.exit(main())

"""
Entry point for zipapp packaging of cvm.
"""

import os
import sys

# When running from the zipapp or imported as src.entry, the cvm package
# lives next to this file
if __name__ == "__main__" or __name__ == "src.entry":
    if not any(os.path.dirname(__file__) in p for p in sys.path):
        sys.path.insert(0, os.path.dirname(__file__))

from cvm.cli import main as cli_main


def main() -> int:
    """Entry point for zipapp."""
    return cli_main()


if __name__ == "__main__":
    sys.exit(main())

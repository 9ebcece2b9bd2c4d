"""
Zipapp __main__ for cvm; the entry logic is in entry.py.
"""

import sys

from entry import main

if __name__ == "__main__":
    sys.exit(main())

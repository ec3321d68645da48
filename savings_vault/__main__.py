"""Allow running the package as a module: python -m savings_vault"""

import sys

from savings_vault.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

"""`python -m staking_strategy` runs the staking-strategy CLI."""

import sys

from staking_strategy.cli import main

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

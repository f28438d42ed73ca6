"""
Neuroroad - neural-network drivers on an endless road.

Run ``python main.py --help`` for options; same as ``python -m neuroroad``.
"""

import sys

from neuroroad.cli import main

if __name__ == "__main__":
    sys.exit(main())

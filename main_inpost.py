#!/usr/bin/env python3

"""
Launcher for the InPost courier workflow (`shipping.inpost.workflow`).

Run `python main_inpost.py --help` for the options. INPOST_API_TOKEN and
INPOST_ORGANIZATION_ID come from the environment or `secrets.txt`.
"""

import sys
import os

# Makes `common` and `shipping` importable when run from a checkout.
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from shipping.inpost.workflow import main

if __name__ == '__main__':
    sys.exit(main())

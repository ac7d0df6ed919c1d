# Allows the package to be run as a script using `python -m site_linkgraph`

from __future__ import annotations

import sys

from site_linkgraph.cli import main

if __name__ == "__main__":
    sys.exit(main())

"""Allow running as `python -m subharvest`."""

import sys

from .cli import main

sys.exit(main())

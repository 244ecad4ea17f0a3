"""Allow ``python -m hwinventory``."""

import sys

from .inventory import main

sys.exit(main())

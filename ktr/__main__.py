"""Allow ``python -m ktr``."""

import sys

from ktr.cli import main

sys.exit(main())

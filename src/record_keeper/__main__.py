"""Allow ``python -m record_keeper``."""

import sys

from record_keeper.cli import main

sys.exit(main())

"""Allow ``python -m markup_compressor``."""

import sys

from markup_compressor.cli import main

sys.exit(main())

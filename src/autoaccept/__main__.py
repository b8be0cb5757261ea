"""Allow `python -m autoaccept` to run the CLI."""

import sys

from autoaccept.main import main

sys.exit(main())

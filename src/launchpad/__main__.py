"""Allow ``python -m launchpad``."""

import sys

from launchpad.startup.orchestrator import main

sys.exit(main())

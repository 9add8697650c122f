"""Allow ``python -m fabric_provisioner``."""
import sys

from .cli import main

sys.exit(main())

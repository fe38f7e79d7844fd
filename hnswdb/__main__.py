"""Allow `python -m hnswdb`."""

import sys

from hnswdb.cli import main

sys.exit(main())

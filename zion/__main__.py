import sys

from zion.core.cli import main

sys.exit(main())

# (c) Copyright Datacraft, 2026
import sys

from docscan.cli import main

sys.exit(main())

import sys

from sqlmigrate.cli import main

sys.exit(main())

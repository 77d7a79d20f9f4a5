import sys

from apngkit.cli import main

sys.exit(main())

import sys

from savvy.cli import main

sys.exit(main())

import sys

from rimefilter.cli import main

sys.exit(main())

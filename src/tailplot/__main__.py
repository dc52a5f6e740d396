import sys

from tailplot.cli import main

sys.exit(main())

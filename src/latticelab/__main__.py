import sys

from latticelab.cli import main

sys.exit(main())

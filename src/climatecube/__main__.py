import sys

from climatecube.cli import main

sys.exit(main())

import sys

from simfleet.cli.dispatch import main

sys.exit(main())

import sys

from casrelay.cli import main

sys.exit(main())

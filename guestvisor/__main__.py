import sys

from guestvisor.cli import main

sys.exit(main())

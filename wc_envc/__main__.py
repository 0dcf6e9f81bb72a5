import sys

from wc_envc.cli import main

sys.exit(main())

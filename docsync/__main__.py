import sys

from docsync.main import main

sys.exit(main())

import sys

from NLOGS.main import main

sys.exit(main())

import sys

from tscompute.run import main

sys.exit(main())

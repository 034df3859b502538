import sys

from gym_kernel.cli import main

sys.exit(main())

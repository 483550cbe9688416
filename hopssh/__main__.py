import sys

from .cli.hopssh_cli import main

sys.exit(main())

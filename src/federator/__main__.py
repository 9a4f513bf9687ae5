import sys

from federator.cli.main import main

sys.exit(main())

import sys

from temporaries.cli.commands import main

sys.exit(main())

import sys

from ec2runner.cli import main

sys.exit(main())

import sys

from assessment_engine.cli import main

sys.exit(main())

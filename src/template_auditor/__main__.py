import sys

from template_auditor.cli import main

if __name__ == "__main__":
    sys.exit(main())

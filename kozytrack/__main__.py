import sys

from kozytrack.main import main

if __name__ == "__main__":
    sys.exit(main())

import sys

# Import the entry point explicitly so frozen builds bundle the package.
from reqdeck.main import main

if __name__ == "__main__":
    sys.exit(main())

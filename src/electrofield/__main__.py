"""Command-line interface."""
from electrofield.main import main

if __name__ == "__main__":
    main()

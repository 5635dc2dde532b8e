"""
Package entry point.

Allows running the application via:

    python -m pampatime

This simply forwards execution to pampatime.cli.main().
"""

from pampatime.cli import main

if __name__ == "__main__":
    main()

"""Entry point for running moment-map as a module.

Usage:
    python -m moment_map [command] [options]
"""

from moment_map.cli import main

if __name__ == "__main__":
    main()

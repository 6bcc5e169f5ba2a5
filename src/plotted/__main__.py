"""Entry point for running plotted as a module.

Usage:
    python -m plotted [command] [options]
"""

from plotted.cli import main

if __name__ == "__main__":
    main()

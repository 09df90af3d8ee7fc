#!/usr/bin/env python3
"""
cfgview - basic-block control-flow graphs for raw machine code.
With -i, builds the graph once (optionally writing DOT with -o) and exits;
otherwise opens the interactive shell.
"""

import os
import sys

# Ensure the project root is on sys.path so imports work from any cwd.
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


def main():
    from ui.cli import main as cli_main
    return cli_main()


if __name__ == "__main__":
    sys.exit(main())

"""
Main entry point for running the package as a module.

Usage:
    python -m thumbproxy serve --port 8080
    python -m thumbproxy inspect /mywiki/en/thumb/Cat.jpg/100px-Cat.jpg
    python -m thumbproxy render /mywiki/en/thumb/Cat.jpg/100px-Cat.jpg --local-root ./store
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())

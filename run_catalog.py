#!/usr/bin/env python3
"""Launch the extension catalog API from a source checkout."""

import sys

from extcatalog.cli import app

if __name__ == "__main__":
    app(["serve", *sys.argv[1:]])

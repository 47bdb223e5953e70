#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Entry point for the lab stack bootstrapper.

Usage: ./bootstrap_stack.py [--fresh|--refresh] [--project-root PATH] [--config PATH] [--debug]
"""

import sys

from labstack.main_bootstrap import main

if __name__ == "__main__":
    sys.exit(main())

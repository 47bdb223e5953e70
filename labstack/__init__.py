# labstack/__init__.py
# -*- coding: utf-8 -*-
"""
Bootstrapper for the MQ + ACE + DataPower lab stack.

The package renders the stack's compose files and service configs, prepares
its named volumes and starts the three containers in health-gated waves.
"""

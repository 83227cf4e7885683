#!/usr/bin/env python3
"""
Main execution module for the unit migrator
"""

from unit_migrator.cli.commands import main

if __name__ == "__main__":
    main()

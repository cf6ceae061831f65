#!/usr/bin/env python3
"""
Script entry point for squrly.

    IM_SECRET=... python main.py [FILE]
"""

from __future__ import annotations

from squrly.cli import main

if __name__ == "__main__":
    main()

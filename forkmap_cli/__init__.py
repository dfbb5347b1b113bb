# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Forkmap CLI Module

Command-line tools for mapping saved model responses and walking their forks.

Commands:
- parse <file>: Normalize a response and print the result JSON
- points <file>: Print the ordered forcing points
- traverse <file> [--state F] [--answer ID=yes|no] [--choose ID=CLAIM]: Apply decisions

Usage:
    python -m forkmap_cli parse response.txt
    python -m forkmap_cli traverse response.txt --answer det_ext_1=no --output-state state.json
"""

from forkmap_cli.map_cmd import main

__all__ = ["main"]

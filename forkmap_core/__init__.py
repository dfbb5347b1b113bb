# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors

"""
Forkmap Core Engine
===================

Turns model text into a claim graph and walks a user through its forks.
"""

__version__ = "0.4.0"


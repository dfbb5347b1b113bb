# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
from forkmap_cli.map_cmd import main

if __name__ == "__main__":
    main()

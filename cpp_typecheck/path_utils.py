#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Location of the command cache and discovery of compilation databases."""

import os
import logging
from typing import Optional

from .constants import CACHE_ROOT_PARTS, COMPILE_COMMANDS_JSON, FileAccessError

logger = logging.getLogger(__name__)


def get_cache_dir(base_dir: Optional[str] = None) -> str:
    """Return the command cache directory, creating it if needed.

    Args:
        base_dir: Directory to use instead of <home>/.cpp_typecheck/cache/cmds

    Returns:
        Absolute path to the cache directory

    Raises:
        FileAccessError: If the home directory is unknown or the directory cannot be created
    """
    if base_dir is None:
        home = os.path.expanduser("~")
        if home == "~":
            raise FileAccessError("Couldn't read home directory!")
        cache_dir = os.path.join(home, *CACHE_ROOT_PARTS)
    else:
        cache_dir = os.path.abspath(base_dir)

    if not os.path.isdir(cache_dir):
        try:
            os.makedirs(cache_dir, exist_ok=True)
            logger.debug("Created cache directory: %s", cache_dir)
        except OSError as e:
            raise FileAccessError(f"Failed to create cache directory {cache_dir}: {e}", cache_dir) from e

    return cache_dir


def find_compile_database(start_path: str) -> Optional[str]:
    """Search upwards from start_path for a compile_commands.json.

    Args:
        start_path: A file or directory; files start the search at their directory

    Returns:
        Path to the nearest compilation database, or None if the filesystem root is reached
    """
    current = os.path.abspath(start_path)
    if not os.path.isdir(current):
        current = os.path.dirname(current)

    while True:
        candidate = os.path.join(current, COMPILE_COMMANDS_JSON)
        if os.path.isfile(candidate):
            logger.debug("Found compilation database: %s", candidate)
            return candidate

        parent = os.path.dirname(current)
        if parent == current:
            logger.debug("No %s found above %s", COMPILE_COMMANDS_JSON, start_path)
            return None
        current = parent

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
"""Persistent, content-addressed cache of resolved compile commands.

Each entry is a small text file named after a hash of the absolute source path and
holds three lines: directory, command and file. Entries are written once and never
overwritten (first writer wins), which keeps concurrent invocations race-free without
locks. Entries are never validated against database or source modification times;
delete the cache directory by hand after regenerating a database.
"""

import os
import enum
import hashlib
import logging
import tempfile
from typing import Optional, Sequence

from .compile_db_utils import CompileRecord, resolve_compile_record
from .constants import CACHE_ENTRY_LINES, CACHE_KEY_DIGEST_SIZE, CACHE_TEMP_PREFIX, CorruptCacheEntryError, FileAccessError

logger = logging.getLogger(__name__)


class CacheMode(enum.Enum):
    """How a lookup uses the command cache.

    Attributes:
        BYPASS: Never read or write the cache
        NORMAL: Read the cache, resolve and store on a miss
        FORCE_REFRESH: Never read the cache, always resolve and store
    """

    BYPASS = "bypass"
    NORMAL = "normal"
    FORCE_REFRESH = "force-refresh"


def compute_cache_key(cpp_file: str) -> str:
    """Return a stable hex key for an absolute source path."""
    hash_obj = hashlib.blake2b(digest_size=CACHE_KEY_DIGEST_SIZE)
    hash_obj.update(cpp_file.encode("utf-8", errors="surrogateescape"))
    return hash_obj.hexdigest()


def serialize_record(record: CompileRecord) -> str:
    return f"{record.directory}\n{record.command}\n{record.file}"


def deserialize_record(text: str, entry_path: str) -> CompileRecord:
    """Parse the three-line text of a cache entry.

    Raises:
        CorruptCacheEntryError: If a line is missing or the command is empty
    """
    # Newline only; directories and commands may contain other line-break characters
    lines = [line.removesuffix("\r") for line in text.split("\n")]
    if len(lines) < CACHE_ENTRY_LINES:
        raise CorruptCacheEntryError(f"Expected {CACHE_ENTRY_LINES} lines (directory, command, file) in cache entry '{entry_path}':\n{text}", entry_path)

    directory, command, file_path = lines[0], lines[1], lines[2]
    if not command:
        raise CorruptCacheEntryError(f"Unexpected empty command in cache entry '{entry_path}'!", entry_path)

    return CompileRecord(directory=directory, command=command, file=file_path)


class CommandCache:
    """Disk-backed store mapping absolute source paths to compile records.

    Args:
        cache_dir: Existing directory holding the entries, computed once by the caller
    """

    def __init__(self, cache_dir: str):
        self.cache_dir = cache_dir

    def entry_path(self, cpp_file: str) -> str:
        # Records store normalized paths; keys must match for lookup and store
        return os.path.join(self.cache_dir, compute_cache_key(os.path.normpath(cpp_file)))

    def lookup(self, cpp_file: str) -> Optional[CompileRecord]:
        """Return the cached record for cpp_file, or None if there is no entry.

        Raises:
            CorruptCacheEntryError: If the entry is malformed
            FileAccessError: If the entry exists but cannot be read
        """
        entry_path = self.entry_path(cpp_file)
        if not os.path.isfile(entry_path):
            logger.debug("Cache miss: %s", cpp_file)
            return None

        try:
            with open(entry_path, "r", encoding="utf-8", errors="surrogateescape") as f:
                text = f.read()
        except OSError as e:
            raise FileAccessError(f"Cannot read cache entry '{entry_path}': {e}", entry_path) from e

        record = deserialize_record(text, entry_path)
        logger.debug("Cache hit: %s (%s)", cpp_file, entry_path)
        return record

    def store(self, record: CompileRecord) -> bool:
        """Write record under the key of record.file unless an entry already exists.

        The entry is written to a temporary file first and then hard-linked to its
        final name, so readers never observe a partial entry and a concurrent writer
        that loses the race leaves the existing entry untouched.

        Returns:
            True if this call created the entry, False if one was already present

        Raises:
            FileAccessError: If the entry cannot be written
        """
        entry_path = self.entry_path(record.file)
        if os.path.exists(entry_path):
            logger.debug("Cache entry exists, keeping it: %s", entry_path)
            return False

        try:
            fd, temp_path = tempfile.mkstemp(prefix=CACHE_TEMP_PREFIX, dir=self.cache_dir)
        except OSError as e:
            raise FileAccessError(f"Cannot create cache entry in '{self.cache_dir}': {e}", self.cache_dir) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as f:
                f.write(serialize_record(record))
            os.link(temp_path, entry_path)
        except FileExistsError:
            logger.debug("Lost cache write race, keeping existing entry: %s", entry_path)
            return False
        except OSError as e:
            raise FileAccessError(f"Cannot write cache entry '{entry_path}': {e}", entry_path) from e
        finally:
            try:
                os.remove(temp_path)
            except FileNotFoundError:
                pass

        logger.debug("Cached command for %s: %s", record.file, entry_path)
        return True


def find_compile_record(cpp_file: str, db_files: Sequence[str], cache: Optional[CommandCache], mode: CacheMode = CacheMode.NORMAL) -> CompileRecord:
    """Resolve the compile record for cpp_file, honoring the caching mode.

    Args:
        cpp_file: Absolute path of the source file
        db_files: Compilation databases, searched in order on a cache miss
        cache: Command cache, ignored in BYPASS mode
        mode: Caching mode

    Returns:
        The cached or freshly resolved record

    Raises:
        RecordNotFoundError: If no database has a record for cpp_file
    """
    if cache is None or mode is CacheMode.BYPASS:
        return resolve_compile_record(cpp_file, db_files)

    if mode is CacheMode.NORMAL:
        cached = cache.lookup(cpp_file)
        if cached is not None:
            return cached

    record = resolve_compile_record(cpp_file, db_files)
    cache.store(record)
    return record

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
"""Parsing of clang compilation databases and lookup of compile records."""

import os
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from .constants import REQUIRED_RECORD_FIELDS, DatabaseParseError, DatabaseSchemaError, FileAccessError, RecordNotFoundError

logger = logging.getLogger(__name__)

__all__ = ["CompileRecord", "parse_compile_database", "load_compile_database", "resolve_compile_record"]


@dataclass(frozen=True)
class CompileRecord:
    """A compiler command from a clang compilation database.

    Attributes:
        directory: Working directory for the compiler command
        command: The compiler command itself, backslash escapes stripped
        file: Absolute, normalized path of the compiled source file
        recorded_file: The path as spelled in the database, before normalization
    """

    directory: str
    command: str
    file: str
    recorded_file: str = field(default="", compare=False, repr=False)

    @classmethod
    def from_json_obj(cls, obj: Dict[str, Any], db_file: str = "<string>") -> "CompileRecord":
        """Build a record from one compilation database entry.

        A relative 'file' is joined with 'directory'. Every literal backslash
        in 'command' is removed.

        Raises:
            DatabaseSchemaError: If a required field is missing or not a string
        """
        values: Dict[str, str] = {}
        for field_name in REQUIRED_RECORD_FIELDS:
            value = obj.get(field_name)
            if not isinstance(value, str):
                raise DatabaseSchemaError(f"Couldn't find string entry '{field_name}' in json object: '{obj}' ({db_file})", field_name, db_file)
            values[field_name] = value

        directory = values["directory"]
        file_path = values["file"]
        if not os.path.isabs(file_path):
            file_path = os.path.join(directory, file_path)

        return cls(
            directory=directory,
            command=values["command"].replace("\\", ""),
            file=os.path.normpath(file_path),
            recorded_file=file_path,
        )

    def has_cpp_file(self, cpp_file: str) -> bool:
        """Check whether this record compiles the given file (plain path equality)."""
        return os.path.normpath(cpp_file) == self.file

    def replace_cpp_file(self, cpp_file: str) -> "CompileRecord":
        """Return a copy of this record compiling cpp_file instead of self.file.

        Every textual occurrence of the old file path inside the command is
        substituted as well, both as recorded in the database and normalized.
        """
        command = self.command
        # The command spells the path the way the database did, e.g. build/../src/a.cpp
        if self.recorded_file and self.recorded_file != self.file:
            command = command.replace(self.recorded_file, cpp_file)
        command = command.replace(self.file, cpp_file)
        return CompileRecord(directory=self.directory, command=command, file=cpp_file)


def parse_compile_database(text: str, db_file: str = "<string>") -> List[CompileRecord]:
    """Parse the contents of one compilation database.

    Args:
        text: JSON text, expected to be an array of objects
        db_file: Path of the database, used in error messages

    Returns:
        One CompileRecord per array element, in document order

    Raises:
        DatabaseParseError: If the text is not a JSON array of objects
        DatabaseSchemaError: If an entry misses 'directory', 'file' or 'command'
    """
    try:
        json_value = json.loads(text)
    except json.JSONDecodeError as e:
        raise DatabaseParseError(f"Invalid JSON in compilation database '{db_file}': {e}", db_file) from e

    if not isinstance(json_value, list):
        raise DatabaseParseError(f"Expected a json array in '{db_file}' but got: '{type(json_value).__name__}'", db_file)

    records: List[CompileRecord] = []
    for obj in json_value:
        if not isinstance(obj, dict):
            raise DatabaseParseError(f"Expected a json object in '{db_file}' but got: '{obj}'", db_file)
        records.append(CompileRecord.from_json_obj(obj, db_file))

    return records


def load_compile_database(db_file: str) -> List[CompileRecord]:
    """Read and parse a compilation database file.

    Raises:
        FileAccessError: If the file cannot be read
        DatabaseParseError: If the file is not a JSON array of objects
        DatabaseSchemaError: If an entry misses a required field
    """
    try:
        with open(db_file, "r", encoding="utf-8") as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise DatabaseParseError(f"Compilation database '{db_file}' is not valid UTF-8: {e}", db_file) from e
    except OSError as e:
        raise FileAccessError(f"Cannot read compilation database '{db_file}': {e}", db_file) from e

    records = parse_compile_database(text, db_file)
    logger.debug("Loaded %d records from %s", len(records), db_file)
    return records


def resolve_compile_record(target_file: str, db_files: Sequence[str]) -> CompileRecord:
    """Find the first record compiling target_file.

    Databases are searched in the given order, entries in document order.
    Each database is read at most once.

    Raises:
        RecordNotFoundError: If no database has a record for target_file
    """
    for db_file in db_files:
        for record in load_compile_database(db_file):
            if record.has_cpp_file(target_file):
                logger.debug("Found %s in %s", target_file, db_file)
                return record

    raise RecordNotFoundError(target_file, db_files)

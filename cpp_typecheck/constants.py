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
"""Shared constants for cpp-typecheck.

This module provides centralized constants used by the command resolution engine
and the command-line tool, plus the exception hierarchy every engine error derives from.
"""

from typing import List, Optional, Sequence

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_RUNTIME_ERROR = 2
EXIT_KEYBOARD_INTERRUPT = 130

# =============================================================================
# Compilation Database Constants
# =============================================================================

COMPILE_COMMANDS_JSON = "compile_commands.json"  # Standard compilation database filename

# Fields every compilation database entry must carry as strings
REQUIRED_RECORD_FIELDS = ("directory", "file", "command")

# =============================================================================
# Cache Constants
# =============================================================================

CACHE_ROOT_PARTS = (".cpp_typecheck", "cache", "cmds")  # Relative to the home directory
CACHE_KEY_DIGEST_SIZE = 8  # blake2b digest size in bytes (64-bit key)
CACHE_ENTRY_LINES = 3  # directory, command, file
CACHE_TEMP_PREFIX = ".tmp-"

# =============================================================================
# Source Classification Constants
# =============================================================================

# Order matters: sibling lookup tries these in sequence
SOURCE_EXTENSIONS = ("cpp", "cxx", "cc", "c", "c++", "CPP", "CXX", "CC", "C", "C++")
HEADER_EXTENSIONS = ("h", "hpp", "hxx", "hh", "h++", "H", "HPP", "HXX", "HH", "H++")

SYNTHESIZED_SOURCE_PREFIX = "cpp_typecheck_"

# =============================================================================
# Compiler Constants
# =============================================================================

# Matched as case-sensitive substrings of the compiler executable
GCC_CLANG_IDENTIFIERS = ("gcc", "g++", "clang", "clang++")

TYPECHECK_FLAG = "-fsyntax-only"
PREPROCESS_FLAG = "-E"
OUTPUT_FLAG = "-o"

# =============================================================================
# Exception Classes
# =============================================================================


class TypecheckError(Exception):
    """Base exception for all cpp-typecheck errors.

    All cpp-typecheck exceptions carry an exit_code attribute that indicates
    what exit code the program should use when this error is caught at the
    main entry point.
    """

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


# Validation errors (EXIT_INVALID_ARGS)
class ValidationError(TypecheckError):
    """Raised when input validation fails (arguments, paths, etc)."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_ARGS)


class ArgumentError(ValidationError):
    """Raised when command-line arguments are invalid."""


# Compilation database errors
class DatabaseError(TypecheckError):
    """Raised when a compilation database cannot be used."""

    def __init__(self, message: str, db_file: Optional[str] = None):
        super().__init__(message)
        self.db_file = db_file


class DatabaseParseError(DatabaseError):
    """Raised when a database is not a JSON array of objects."""


class DatabaseSchemaError(DatabaseError):
    """Raised when a database entry lacks a required string field."""

    def __init__(self, message: str, field_name: str, db_file: Optional[str] = None):
        super().__init__(message, db_file)
        self.field_name = field_name


class RecordNotFoundError(TypecheckError):
    """Raised when no database contains a record for the requested file."""

    def __init__(self, target_file: str, db_files: Sequence[str]):
        self.target_file = target_file
        self.db_files: List[str] = list(db_files)
        super().__init__(f"Couldn't find C++ source file '{target_file}' in compilation databases {self.db_files}!")


# Cache errors
class CorruptCacheEntryError(TypecheckError):
    """Raised when a cache entry does not hold directory, command and file lines."""

    def __init__(self, message: str, entry_path: str):
        super().__init__(message)
        self.entry_path = entry_path


# Source classification errors
class NoSourceFoundError(TypecheckError):
    """Raised when no compilable unit can be found or borrowed for a header."""

    def __init__(self, header: str):
        self.header = header
        super().__init__(f"Couldn't find a C++ source file with a compile command for header '{header}'!")


# Compiler invocation errors
class CompilerError(TypecheckError):
    """Raised when the compiler command cannot be built or started."""

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.command = command


class EmptyCommandError(CompilerError):
    """Raised when a stored command yields no tokens."""


class UnsupportedOperationError(CompilerError):
    """Raised when the compiler family has no flag for the requested analysis."""


class ExecutionFailedError(CompilerError):
    """Raised when the compiler process cannot be spawned."""


# Filesystem errors
class FileAccessError(TypecheckError):
    """Raised when reading or writing a file or directory fails."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path

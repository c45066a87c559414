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
"""Type check or preprocess a single C/C++ file with its recorded compile command.

The compile command is looked up in one or more clang compilation databases
(compile_commands.json), cached per file under ~/.cpp_typecheck/cache/cmds, and
re-run with -fsyntax-only (or -E) for gcc and clang compilers. Headers are checked
through their same-named source file, or through a temporary source file that
includes them and borrows the command of a neighbouring source file.

Requirements:
    - Python 3.10+
    - colorama, packaging

Usage:
    cppTypecheck.py <source_file> [<compile_commands.json> ...] [--preprocess] [--compiler=EXE]

Exit Codes:
    The compiler's own exit status when it ran
    1: Invalid arguments
    2: Command resolution or invocation failed
    130: Interrupted
"""

import os
import sys
import signal
import logging
import argparse
from typing import Any, List, Optional, Sequence

__version__ = "1.0.0"

from cpp_typecheck.cache_utils import CacheMode, CommandCache, find_compile_record
from cpp_typecheck.color_utils import Colors, print_error, print_warning, should_use_color
from cpp_typecheck.compile_db_utils import CompileRecord
from cpp_typecheck.compiler_utils import AnalysisMode, run_compiler
from cpp_typecheck.constants import COMPILE_COMMANDS_JSON, EXIT_KEYBOARD_INTERRUPT, EXIT_SUCCESS, ArgumentError, TypecheckError
from cpp_typecheck.package_verification import check_all_packages, require_package
from cpp_typecheck.path_utils import find_compile_database, get_cache_dir
from cpp_typecheck.source_utils import DirectSource, HeaderSynthesized, HeaderWithSibling, classified_source

# Check colorama version early with helpful error message
require_package("colorama", "colored diagnostics")

__all__ = ["EXIT_SUCCESS", "main", "parse_arguments", "get_cache_mode", "get_database_files"]


def signal_handler(signum: int, frame: Any) -> None:
    """Handle interrupt signals gracefully."""
    print_warning("\nInterrupted by user. Exiting...", prefix=False)
    sys.exit(EXIT_KEYBOARD_INTERRUPT)


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Type check a C/C++ source or header file with a clang compilation database.",
        epilog=f"Version {__version__}\n\nExamples:\n"
        f"  %(prog)s /src/project/main.cpp /src/project/build/{COMPILE_COMMANDS_JSON}\n"
        f"  %(prog)s /src/project/widget.h\n"
        f"  %(prog)s /src/project/main.cpp --preprocess --compiler clang++\n"
        f"\nCached commands are never invalidated automatically; use --refresh-cache\n"
        f"or delete the cache directory after regenerating a database.\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("source_file", metavar="SOURCE-FILE", nargs="?", help="Absolute path of the C/C++ source or header file to check")

    parser.add_argument(
        "db_files",
        metavar="CLANG-DB",
        nargs="*",
        help=f"Clang compilation databases, searched in order (default: nearest {COMPILE_COMMANDS_JSON} above the source file)",
    )

    parser.add_argument("--compiler", metavar="EXE", help="Compiler executable replacing the one recorded in the database")

    parser.add_argument("--preprocess", "-E", action="store_true", help="Only preprocess the file instead of type checking it")

    cache_group = parser.add_mutually_exclusive_group()
    cache_group.add_argument("--no-cache", action="store_true", help="Neither read nor write the command cache")
    cache_group.add_argument("--refresh-cache", action="store_true", help="Skip the cache lookup and store the freshly resolved command")

    parser.add_argument("--cache-dir", metavar="DIR", help="Directory for cached commands (default: ~/.cpp_typecheck/cache/cmds)")

    parser.add_argument("--check-packages", action="store_true", help="Verify runtime package versions and exit")

    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose debug logging")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def get_cache_mode(args: argparse.Namespace) -> CacheMode:
    if args.no_cache:
        return CacheMode.BYPASS
    if args.refresh_cache:
        return CacheMode.FORCE_REFRESH
    return CacheMode.NORMAL


def get_database_files(source_file: str, db_files: List[str]) -> List[str]:
    """Return the databases to search, discovering one if none was given.

    Raises:
        ArgumentError: If no database was given and none was found
    """
    if db_files:
        return [os.path.abspath(db_file) for db_file in db_files]

    discovered = find_compile_database(source_file)
    if discovered is None:
        raise ArgumentError(f"No clang compilation database given and no {COMPILE_COMMANDS_JSON} found above '{source_file}'!")

    logging.info("Using compilation database: %s", discovered)
    return [discovered]


def run(args: argparse.Namespace) -> int:
    """Resolve the compile command for args.source_file and run the compiler.

    Returns:
        Exit status of the compiler

    Raises:
        TypecheckError: If the command cannot be resolved or started
    """
    if not args.source_file:
        raise ArgumentError("Missing C++ source file!")

    source_file = args.source_file
    if not os.path.isabs(source_file):
        raise ArgumentError("C++ source file has to have an absolute path!")

    db_files = get_database_files(source_file, args.db_files)
    cache_mode = get_cache_mode(args)
    cache = None if cache_mode is CacheMode.BYPASS else CommandCache(get_cache_dir(args.cache_dir))
    analysis_mode = AnalysisMode.PREPROCESS if args.preprocess else AnalysisMode.TYPECHECK

    with classified_source(source_file, db_files) as classified:
        record: CompileRecord
        match classified:
            case DirectSource(path=path):
                record = find_compile_record(path, db_files, cache, cache_mode)
            case HeaderWithSibling(header=header, source=source):
                logging.debug("Checking header %s through %s", header, source)
                record = find_compile_record(source, db_files, cache, cache_mode)
            case HeaderSynthesized(header=header, temp_source=temp_source, record=synthesized_record):
                logging.debug("Checking header %s through %s", header, temp_source)
                record = synthesized_record

        return run_compiler(record, args.compiler, analysis_mode)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the script.

    Returns:
        Exit code (the compiler's exit status, or non-zero for failures)
    """
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    args = parse_arguments(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")

    if not should_use_color(args.no_color):
        Colors.disable()

    if args.check_packages:
        return EXIT_SUCCESS if check_all_packages() else 1

    try:
        status = run(args)
    except TypecheckError as e:
        logging.debug("%s: %s", type(e).__name__, e)
        print_error(str(e))
        return e.exit_code

    # Killed by a signal: report it the way a shell would
    if status < 0:
        return 128 - status
    return status


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print_warning("Interrupted.", prefix=False)
        sys.exit(EXIT_KEYBOARD_INTERRUPT)

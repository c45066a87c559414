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
"""Re-invocation of a recorded compiler command for type checking or preprocessing."""

import enum
import logging
import subprocess
from typing import List, Optional, Tuple

from .compile_db_utils import CompileRecord
from .constants import GCC_CLANG_IDENTIFIERS, OUTPUT_FLAG, PREPROCESS_FLAG, TYPECHECK_FLAG, EmptyCommandError, ExecutionFailedError, UnsupportedOperationError

logger = logging.getLogger(__name__)


class AnalysisMode(enum.Enum):
    """What the compiler is asked to do with the translation unit."""

    TYPECHECK = "typecheck"
    PREPROCESS = "preprocess"


def is_gcc_or_clang(compiler: str) -> bool:
    return any(identifier in compiler for identifier in GCC_CLANG_IDENTIFIERS)


def get_typecheck_flag(compiler: str) -> Optional[str]:
    return TYPECHECK_FLAG if is_gcc_or_clang(compiler) else None


def get_preprocess_flag(compiler: str) -> Optional[str]:
    return PREPROCESS_FLAG if is_gcc_or_clang(compiler) else None


def build_compiler_arguments(record: CompileRecord, compiler: Optional[str] = None, mode: AnalysisMode = AnalysisMode.TYPECHECK) -> Tuple[str, List[str]]:
    """Turn a stored command into the compiler and its arguments.

    The command is split on single spaces and empty tokens are dropped. Any
    '-o <output>' pair is removed so nothing is written next to the build outputs.
    The analysis flag for the compiler family is appended last.

    Args:
        record: Resolved compile record
        compiler: Executable replacing the one recorded in the database
        mode: Type check or preprocess

    Returns:
        Tuple of (compiler executable, argument list without the executable)

    Raises:
        EmptyCommandError: If the command holds no tokens
        UnsupportedOperationError: If preprocessing is requested for an unknown compiler family

    Example:
        >>> build_compiler_arguments(CompileRecord("/b", "gcc -I/x -o out.o main.cpp", "/b/main.cpp"))
        ('gcc', ['-I/x', 'main.cpp', '-fsyntax-only'])
    """
    tokens = [token for token in record.command.split(" ") if token]
    if not tokens:
        raise EmptyCommandError(f"Unexpected empty arguments after command string split for '{record.file}'!", record.command)

    db_compiler = tokens[0]
    used_compiler = compiler if compiler else db_compiler

    args: List[str] = []
    token_iter = iter(tokens[1:])
    for token in token_iter:
        if token == OUTPUT_FLAG:
            # Drop the output file argument as well
            next(token_iter, None)
        else:
            args.append(token)

    if mode is AnalysisMode.PREPROCESS:
        flag = get_preprocess_flag(used_compiler)
        if flag is None:
            raise UnsupportedOperationError(f"Unsupported compiler {used_compiler} for preprocessing", record.command)
    else:
        flag = get_typecheck_flag(used_compiler)
        if flag is None:
            logger.debug("No type check flag known for %s, running the command as is", used_compiler)

    if flag is not None:
        args.append(flag)

    return used_compiler, args


def run_compiler(record: CompileRecord, compiler: Optional[str] = None, mode: AnalysisMode = AnalysisMode.TYPECHECK) -> int:
    """Run the compiler for record in its recorded working directory.

    Standard streams are inherited and the call blocks until the compiler exits.
    A failing compilation is reported through the returned exit status, not raised.

    Returns:
        Exit status of the compiler process

    Raises:
        EmptyCommandError: If the command holds no tokens
        UnsupportedOperationError: If the mode is unsupported for the compiler family
        ExecutionFailedError: If the compiler process cannot be started
    """
    used_compiler, args = build_compiler_arguments(record, compiler, mode)
    cmd = [used_compiler] + args
    logger.debug("Running in %s: %s", record.directory, " ".join(cmd))

    try:
        result = subprocess.run(cmd, cwd=record.directory, check=False)
    except OSError as e:
        raise ExecutionFailedError(f"Command execution failed: {record.command}, because: {e}", record.command) from e

    logger.debug("%s exited with status %d", used_compiler, result.returncode)
    return result.returncode


def typecheck(record: CompileRecord, compiler: Optional[str] = None) -> int:
    return run_compiler(record, compiler, AnalysisMode.TYPECHECK)


def preprocess(record: CompileRecord, compiler: Optional[str] = None) -> int:
    return run_compiler(record, compiler, AnalysisMode.PREPROCESS)

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
"""Classification of a requested file into something the compiler can check.

Source files are checked directly. A header is checked through its same-named
source file when one exists; otherwise a temporary source file that only includes
the header is compiled with the command of another source file in its directory.
"""

import os
import logging
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Union

from .compile_db_utils import CompileRecord, resolve_compile_record
from .constants import HEADER_EXTENSIONS, SOURCE_EXTENSIONS, SYNTHESIZED_SOURCE_PREFIX, FileAccessError, NoSourceFoundError, RecordNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectSource:
    """The requested file is a compilable unit."""

    path: str


@dataclass(frozen=True)
class HeaderWithSibling:
    """A header checked through the source file sharing its base name."""

    header: str
    source: str


@dataclass(frozen=True)
class HeaderSynthesized:
    """A header checked through a temporary source file.

    Attributes:
        header: The requested header
        temp_source: Temporary file containing only an include of the header
        record: Donor record rewritten to compile temp_source
    """

    header: str
    temp_source: str
    record: CompileRecord


SourceFile = Union[DirectSource, HeaderWithSibling, HeaderSynthesized]


def get_extension(path: str) -> str:
    """Return the extension of path without the leading dot ('' if none)."""
    return os.path.splitext(path)[1][1:]


def is_header_file(path: str) -> bool:
    """Check whether path is treated as a header.

    Files without an extension count as headers (e.g. <vector>-style includes).
    """
    extension = get_extension(path)
    return not extension or extension in HEADER_EXTENSIONS


def is_source_file(path: str) -> bool:
    return get_extension(path) in SOURCE_EXTENSIONS


def find_sibling_source(header: str) -> Optional[str]:
    """Return the first existing source file with the header's base name."""
    stem = os.path.splitext(header)[0]
    for extension in SOURCE_EXTENSIONS:
        candidate = f"{stem}.{extension}"
        if os.path.isfile(candidate):
            return candidate
    return None


def list_donor_candidates(directory: str) -> List[str]:
    """List source files in directory, sorted by name."""
    try:
        names = sorted(os.listdir(directory))
    except OSError as e:
        raise FileAccessError(f"Cannot list directory '{directory}': {e}", directory) from e

    candidates = []
    for name in names:
        path = os.path.join(directory, name)
        if is_source_file(path) and os.path.isfile(path):
            candidates.append(path)
    return candidates


def create_include_source(header: str, extension: str) -> str:
    """Create a temporary source file that includes header and return its path."""
    try:
        fd, temp_path = tempfile.mkstemp(prefix=SYNTHESIZED_SOURCE_PREFIX, suffix=f".{extension}")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(f'#include "{header}"\n')
    except OSError as e:
        raise FileAccessError(f"Cannot create temporary source file for '{header}': {e}", header) from e

    logger.debug("Created %s including %s", temp_path, header)
    return temp_path


def synthesize_header_source(header: str, db_files: Sequence[str]) -> HeaderSynthesized:
    """Borrow the compile command of a source file next to header.

    Raises:
        NoSourceFoundError: If no source file in the header's directory has a record
    """
    for donor in list_donor_candidates(os.path.dirname(header)):
        try:
            donor_record = resolve_compile_record(donor, db_files)
        except RecordNotFoundError:
            logger.debug("No compile command for donor candidate %s", donor)
            continue

        temp_source = create_include_source(header, get_extension(donor))
        logger.debug("Using compile command of %s for header %s", donor, header)
        return HeaderSynthesized(header=header, temp_source=temp_source, record=donor_record.replace_cpp_file(temp_source))

    raise NoSourceFoundError(header)


def classify_source(path: str, db_files: Sequence[str]) -> SourceFile:
    """Decide how the file at path gets compiled.

    Args:
        path: Absolute path of the requested source or header file
        db_files: Compilation databases, only consulted for the donor search

    Returns:
        DirectSource, HeaderWithSibling or HeaderSynthesized

    Raises:
        NoSourceFoundError: If a header has neither a sibling nor a usable donor
    """
    if not is_header_file(path):
        logger.debug("Direct source: %s", path)
        return DirectSource(path=path)

    sibling = find_sibling_source(path)
    if sibling is not None:
        logger.debug("Header %s has sibling source %s", path, sibling)
        return HeaderWithSibling(header=path, source=sibling)

    return synthesize_header_source(path, db_files)


def remove_synthesized_source(source_file: SourceFile) -> None:
    """Delete the temporary file of a HeaderSynthesized result, if any."""
    match source_file:
        case HeaderSynthesized(temp_source=temp_source):
            try:
                os.remove(temp_source)
                logger.debug("Removed %s", temp_source)
            except FileNotFoundError:
                pass
        case DirectSource() | HeaderWithSibling():
            pass


@contextmanager
def classified_source(path: str, db_files: Sequence[str]) -> Iterator[SourceFile]:
    """Classify path and remove any synthesized source file on exit."""
    source_file = classify_source(path, db_files)
    try:
        yield source_file
    finally:
        remove_synthesized_source(source_file)

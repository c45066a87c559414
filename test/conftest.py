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
"""Pytest configuration and shared base fixtures for cpp-typecheck tests.

Fixture Scopes:
- function: Default, recreated for each test
"""

import os
import sys
import json
import tempfile
import shutil
from pathlib import Path
from typing import Dict, Generator, List
import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests.

    Scope: function (default)
    Use for: File I/O operations that need isolation
    """
    tmpdir = os.path.realpath(tempfile.mkdtemp(prefix="cpp_typecheck_test_"))
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def cache_dir(temp_dir: str) -> str:
    """Create an empty command cache directory.

    Scope: function
    Dependencies: temp_dir
    """
    path = Path(temp_dir) / "cache" / "cmds"
    path.mkdir(parents=True)
    return str(path)


@pytest.fixture
def mock_project(temp_dir: str) -> Dict[str, str]:
    """Create a small C++ project layout.

    Layout:
        src/main.cpp, src/utils.cpp, src/utils.hpp (has sibling), src/config.hpp (no sibling)
        include/widget.h (no sources in directory)
        build/ (database directory)

    Scope: function
    Dependencies: temp_dir
    """
    root = Path(temp_dir) / "project"
    src_dir = root / "src"
    include_dir = root / "include"
    build_dir = root / "build"
    for directory in (src_dir, include_dir, build_dir):
        directory.mkdir(parents=True)

    (src_dir / "utils.hpp").write_text("int add(int a, int b);\n")
    (src_dir / "config.hpp").write_text('#define VERSION "1.0.0"\n')
    (src_dir / "main.cpp").write_text('#include "utils.hpp"\n#include "config.hpp"\nint main() { return add(1, 2); }\n')
    (src_dir / "utils.cpp").write_text('#include "utils.hpp"\nint add(int a, int b) { return a + b; }\n')
    (include_dir / "widget.h").write_text("struct Widget {};\n")

    return {"root": str(root), "src": str(src_dir), "include": str(include_dir), "build": str(build_dir)}


def make_compile_commands(src_dir: str, build_dir: str) -> List[Dict[str, str]]:
    """Build compile_commands.json entries for main.cpp and utils.cpp."""
    return [
        {
            "directory": build_dir,
            "command": f"g++ -I{src_dir} -c -o main.cpp.o {src_dir}/main.cpp",
            "file": f"{src_dir}/main.cpp",
        },
        {
            "directory": build_dir,
            "command": f"g++ -I{src_dir} -DUTILS -c -o utils.cpp.o {src_dir}/utils.cpp",
            "file": f"{src_dir}/utils.cpp",
        },
    ]


@pytest.fixture
def mock_compile_commands(mock_project: Dict[str, str]) -> str:
    """Create compile_commands.json in the project's build directory.

    Scope: function
    Dependencies: mock_project
    Use for: Testing compilation database parsing and resolution
    """
    compile_db_path = Path(mock_project["build"]) / "compile_commands.json"
    with open(compile_db_path, "w") as f:
        json.dump(make_compile_commands(mock_project["src"], mock_project["build"]), f, indent=2)

    return str(compile_db_path)

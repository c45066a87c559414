#!/usr/bin/env python3
"""Tests for cpp_typecheck/compile_db_utils.py"""

import os
import json
from pathlib import Path
from typing import Dict
import pytest

from cpp_typecheck.compile_db_utils import CompileRecord, parse_compile_database, load_compile_database, resolve_compile_record
from cpp_typecheck.constants import DatabaseParseError, DatabaseSchemaError, FileAccessError, RecordNotFoundError


def write_db(path: Path, entries: object) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries))
    return str(path)


@pytest.mark.unit
class TestCompileRecord:
    """Test CompileRecord construction from json objects."""

    def test_absolute_file_kept(self) -> None:
        record = CompileRecord.from_json_obj({"directory": "/build", "command": "gcc -c /src/a.c", "file": "/src/a.c"})
        assert record == CompileRecord(directory="/build", command="gcc -c /src/a.c", file="/src/a.c")

    def test_relative_file_joined_with_directory(self) -> None:
        record = CompileRecord.from_json_obj({"directory": "/build", "command": "gcc -c ../src/a.c", "file": "../src/a.c"})
        assert record.file == "/src/a.c"
        assert os.path.isabs(record.file)

    def test_backslashes_stripped_from_command(self) -> None:
        record = CompileRecord.from_json_obj({"directory": "/b", "command": 'gcc -DNAME=\\"x\\" -c a.c', "file": "a.c"})
        assert record.command == 'gcc -DNAME="x" -c a.c'

    @pytest.mark.parametrize("field_name", ["directory", "file", "command"])
    def test_missing_field_named_in_error(self, field_name: str) -> None:
        obj = {"directory": "/b", "command": "gcc a.c", "file": "a.c"}
        del obj[field_name]
        with pytest.raises(DatabaseSchemaError) as exc_info:
            CompileRecord.from_json_obj(obj, "db.json")
        assert exc_info.value.field_name == field_name
        assert field_name in str(exc_info.value)

    def test_non_string_field_rejected(self) -> None:
        with pytest.raises(DatabaseSchemaError) as exc_info:
            CompileRecord.from_json_obj({"directory": "/b", "command": ["gcc", "a.c"], "file": "a.c"})
        assert exc_info.value.field_name == "command"

    def test_replace_cpp_file_rewrites_command(self) -> None:
        record = CompileRecord(directory="/b", command="g++ -c -o /s/a.o /s/a.cpp", file="/s/a.cpp")
        replaced = record.replace_cpp_file("/tmp/t.cpp")

        assert replaced.file == "/tmp/t.cpp"
        assert replaced.command == "g++ -c -o /s/a.o /tmp/t.cpp"
        assert replaced.directory == "/b"
        # Original untouched
        assert record.file == "/s/a.cpp"
        assert record.command == "g++ -c -o /s/a.o /s/a.cpp"

    def test_replace_cpp_file_replaces_every_occurrence(self) -> None:
        record = CompileRecord(directory="/b", command="g++ -MF /s/a.cpp.d /s/a.cpp", file="/s/a.cpp")
        assert record.replace_cpp_file("/t.cpp").command == "g++ -MF /t.cpp.d /t.cpp"

    def test_replace_cpp_file_with_unnormalized_recorded_path(self) -> None:
        record = CompileRecord.from_json_obj({"directory": "/p/build", "command": "g++ -c /p/build/../src/a.cpp", "file": "/p/build/../src/a.cpp"})
        assert record.file == "/p/src/a.cpp"

        replaced = record.replace_cpp_file("/tmp/t.cpp")
        assert replaced.command == "g++ -c /tmp/t.cpp"
        assert replaced.file == "/tmp/t.cpp"

    def test_recorded_path_ignored_by_equality(self) -> None:
        record = CompileRecord.from_json_obj({"directory": "/p", "command": "g++ -c src/a.cpp", "file": "src/./a.cpp"})
        assert record == CompileRecord(directory="/p", command="g++ -c src/a.cpp", file="/p/src/a.cpp")


@pytest.mark.unit
class TestParseCompileDatabase:
    """Test parsing of compilation database text."""

    def test_records_in_document_order(self) -> None:
        text = json.dumps(
            [
                {"directory": "/b", "command": "gcc -c a.c", "file": "a.c"},
                {"directory": "/b", "command": "gcc -c b.c", "file": "b.c"},
                {"directory": "/b", "command": "gcc -O2 -c a.c", "file": "a.c"},
            ]
        )
        records = parse_compile_database(text)
        assert [r.file for r in records] == ["/b/a.c", "/b/b.c", "/b/a.c"]
        assert records[2].command == "gcc -O2 -c a.c"

    def test_empty_array(self) -> None:
        assert parse_compile_database("[]") == []

    def test_invalid_json(self) -> None:
        with pytest.raises(DatabaseParseError) as exc_info:
            parse_compile_database("[{", "broken.json")
        assert exc_info.value.db_file == "broken.json"

    def test_top_level_not_array(self) -> None:
        with pytest.raises(DatabaseParseError):
            parse_compile_database('{"directory": "/b"}')

    def test_element_not_object(self) -> None:
        with pytest.raises(DatabaseParseError):
            parse_compile_database('[{"directory": "/b", "command": "gcc a.c", "file": "a.c"}, 42]')


@pytest.mark.unit
class TestResolveCompileRecord:
    """Test record lookup across databases."""

    def test_resolve_returns_matching_record(self, mock_compile_commands: str, mock_project: Dict[str, str]) -> None:
        target = os.path.join(mock_project["src"], "utils.cpp")
        record = resolve_compile_record(target, [mock_compile_commands])

        assert record.file == target
        assert record.directory == mock_project["build"]
        assert "-DUTILS" in record.command

    def test_first_database_wins(self, temp_dir: str) -> None:
        first = write_db(Path(temp_dir) / "a" / "compile_commands.json", [{"directory": "/one", "command": "gcc -DONE x.c", "file": "/s/x.c"}])
        second = write_db(Path(temp_dir) / "b" / "compile_commands.json", [{"directory": "/two", "command": "gcc -DTWO x.c", "file": "/s/x.c"}])

        assert resolve_compile_record("/s/x.c", [first, second]).directory == "/one"
        assert resolve_compile_record("/s/x.c", [second, first]).directory == "/two"

    def test_first_record_in_document_wins(self, temp_dir: str) -> None:
        db = write_db(
            Path(temp_dir) / "compile_commands.json",
            [
                {"directory": "/b", "command": "gcc -DFIRST x.c", "file": "/s/x.c"},
                {"directory": "/b", "command": "gcc -DSECOND x.c", "file": "/s/x.c"},
            ],
        )
        assert "-DFIRST" in resolve_compile_record("/s/x.c", [db]).command

    def test_relative_file_matches_absolute_target(self, temp_dir: str) -> None:
        db = write_db(Path(temp_dir) / "compile_commands.json", [{"directory": "/b/build", "command": "gcc -c ../x.c", "file": "../x.c"}])
        assert resolve_compile_record("/b/x.c", [db]).command == "gcc -c ../x.c"

    def test_not_found_names_all_databases(self, temp_dir: str) -> None:
        first = write_db(Path(temp_dir) / "a.json", [{"directory": "/b", "command": "gcc a.c", "file": "/s/a.c"}])
        second = write_db(Path(temp_dir) / "b.json", [])

        with pytest.raises(RecordNotFoundError) as exc_info:
            resolve_compile_record("/s/missing.c", [first, second])

        assert exc_info.value.target_file == "/s/missing.c"
        assert exc_info.value.db_files == [first, second]
        assert first in str(exc_info.value)
        assert second in str(exc_info.value)

    def test_no_databases(self) -> None:
        with pytest.raises(RecordNotFoundError):
            resolve_compile_record("/s/a.c", [])

    def test_missing_database_file(self, temp_dir: str) -> None:
        with pytest.raises(FileAccessError):
            load_compile_database(os.path.join(temp_dir, "nope.json"))

    def test_parse_error_stops_search(self, temp_dir: str) -> None:
        broken = Path(temp_dir) / "broken.json"
        broken.write_text("not json")
        good = write_db(Path(temp_dir) / "good.json", [{"directory": "/b", "command": "gcc a.c", "file": "/s/a.c"}])

        with pytest.raises(DatabaseParseError):
            resolve_compile_record("/s/a.c", [str(broken), good])

    def test_database_not_utf8(self, temp_dir: str) -> None:
        db = Path(temp_dir) / "compile_commands.json"
        db.write_bytes(b'[{"directory": "/b", "command": "gcc -c \xff.c", "file": "/b/a.c"}]')

        with pytest.raises(DatabaseParseError) as exc_info:
            resolve_compile_record("/b/a.c", [str(db)])
        assert exc_info.value.db_file == str(db)
        assert exc_info.value.exit_code == 2

"""
Unit tests for answer text formatting.
"""

import pytest

from formflow.engine.formatting import (
    format_by_data_type,
    format_project_name,
    stringify,
    to_title_case,
)
from formflow.models import DataType


class TestTitleCase:

    @pytest.mark.parametrize("raw,expected", [
        ("niko", "Niko"),
        ("BENJAMIN AL JIR", "Benjamin Al Jir"),
        ("mary-jane o'neil", "Mary-jane O'neil"),
        ("", ""),
    ])
    def test_title_case(self, raw, expected):
        assert to_title_case(raw) == expected

    def test_keeps_double_spaces(self):
        assert to_title_case("ann  lee") == "Ann  Lee"


class TestProjectName:

    def test_slugifies(self):
        assert format_project_name("My Cool Project!") == "my-cool-project"

    def test_collapses_hyphens_and_trims(self):
        assert format_project_name("  --Hello   World--  ") == "hello-world"

    def test_realtime_keeps_edge_hyphen(self):
        assert format_project_name("my ", realtime=True) == "my-"


class TestFormatByDataType:

    def test_name(self):
        assert format_by_data_type("jane doe", DataType.NAME) == "Jane Doe"

    def test_project_name(self):
        assert format_by_data_type("Big Plan", "projectName") == "big-plan"

    def test_other_types_unchanged(self):
        assert format_by_data_type("Some Text", DataType.FREETEXT) == "Some Text"

    def test_non_strings_pass_through(self):
        assert format_by_data_type(42, DataType.NAME) == 42


class TestStringify:

    def test_values(self):
        assert stringify(None) == ""
        assert stringify(False) == "false"
        assert stringify(2.0) == "2"
        assert stringify(2.5) == "2.5"
        assert stringify([1, "a"]) == "1,a"

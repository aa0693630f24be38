import pytest

from vdl_toolchain.utils import (
    PYTHON_RESERVED,
    escape_identifier,
    normalize_doc,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
    to_upper_snake_case,
)


class TestCaseConversion:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("first_name", "FirstName"),
            ("FIRST_NAME", "FirstName"),
            ("actionTemplate", "ActionTemplate"),
            ("getUser", "GetUser"),
            ("HTTPServer", "HttpServer"),
            ("", ""),
        ],
    )
    def test_pascal(self, text, expected):
        assert to_pascal_case(text) == expected

    def test_camel(self):
        assert to_camel_case("user_id") == "userId"
        assert to_camel_case("UserId") == "userId"

    def test_snake(self):
        assert to_snake_case("userId") == "user_id"
        assert to_snake_case("createdAt2") == "created_at_2"

    def test_upper_snake(self):
        assert to_upper_snake_case("InProgress") == "IN_PROGRESS"
        assert to_upper_snake_case("maxUsers") == "MAX_USERS"


def test_escape_identifier():
    assert escape_identifier("class", PYTHON_RESERVED) == "class_"
    assert escape_identifier("type", PYTHON_RESERVED) == "type_"
    assert escape_identifier("name", PYTHON_RESERVED) == "name"


def test_normalize_doc():
    assert normalize_doc("\n    First line\n      indented\n") == "First line\n  indented"
    assert normalize_doc("   \n  ") is None
    assert normalize_doc(None) is None

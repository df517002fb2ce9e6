"""
Unit tests for error handling helpers and value validators.
"""

import logging

import pytest

from buildrelay.validation import (
    ErrorSeverity,
    ValidationError,
    handle_cli_error,
    handle_error,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_string_list,
)


@pytest.mark.unit
class TestHandleError:
    """Test cases for handle_error."""

    def test_reraises_by_default(self):
        with pytest.raises(ValueError):
            handle_error(ValueError("bad"), "testing")

    def test_logs_without_reraise(self, caplog):
        test_logger = logging.getLogger("buildrelay.test")
        with caplog.at_level(logging.WARNING, logger="buildrelay.test"):
            handle_error(
                ValueError("bad"), "testing",
                severity=ErrorSeverity.WARNING, reraise=False, logger=test_logger,
            )
        assert "Error in testing: bad" in caplog.text

    def test_string_severity(self, caplog):
        with caplog.at_level(logging.ERROR):
            handle_error(RuntimeError("boom"), "ctx", severity="ERROR", reraise=False)
        assert "boom" in caplog.text

    def test_cli_error_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_error(ValueError("bad"), "testing", exit_code=3)
        assert exc_info.value.code == 3


@pytest.mark.unit
class TestValidators:
    """Test cases for value validators."""

    def test_positive_integer(self):
        assert validate_positive_integer("5") == 5
        with pytest.raises(ValidationError):
            validate_positive_integer(0)
        with pytest.raises(ValidationError):
            validate_positive_integer(11, max_value=10)
        with pytest.raises(ValidationError):
            validate_positive_integer(False)

    def test_positive_float(self):
        assert validate_positive_float(1) == 1.0
        with pytest.raises(ValidationError):
            validate_positive_float("abc")

    def test_regex_pattern_groups(self):
        assert validate_regex_pattern(r"(?P<name>\w+)", required_groups=("name",))
        with pytest.raises(ValidationError) as exc_info:
            validate_regex_pattern(r"(\w+)", field_name="pattern", required_groups=("name",))
        assert exc_info.value.field_name == "pattern"

    def test_enum_choice(self):
        assert validate_enum_choice("PLAIN", ["plain", "json-stream"], case_sensitive=False) == "plain"
        with pytest.raises(ValidationError):
            validate_enum_choice("PLAIN", ["plain"])

    def test_string_list(self):
        assert validate_string_list(["a", "b"]) == ["a", "b"]
        with pytest.raises(ValidationError):
            validate_string_list([], allow_empty=False)
        with pytest.raises(ValidationError):
            validate_string_list(["a", " "])

"""Unit tests for raw value coercion."""
import pytest

from feedhub.services.coercion import (
    coerce_boolean,
    coerce_json,
    coerce_number,
    coerce_text,
    coerce_value,
)


class TestCoerceNumber:
    """Test coerce_number() with the automatic separator policy."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("9.99", 9.99),
            ("1,200", 1200),
            ("9,99", 9.99),
            ("1.234,56 EUR", 1234.56),
            ("1,234.56", 1234.56),
            ("$1,234,567", 1234567),
            ("-3.0", -3),
            (" 42 ", 42),
            (7, 7),
            (2.5, 2.5),
            (4.0, 4),
        ],
    )
    def test_numbers(self, raw, expected) -> None:
        """Verify common supplier number formats are understood."""
        assert coerce_number(raw) == expected

    def test_integral_results_are_int(self) -> None:
        """Verify whole numbers come back as int."""
        assert isinstance(coerce_number("1,200"), int)
        assert isinstance(coerce_number("9.99"), float)

    @pytest.mark.parametrize("raw", [None, "", "n/a", "abc", True, False, float("nan"), float("inf"), [1]])
    def test_not_numbers(self, raw) -> None:
        """Verify values without a finite number coerce to None."""
        assert coerce_number(raw) is None

    def test_explicit_dot_policy(self) -> None:
        """Verify the '.' policy treats every comma as a thousands separator."""
        assert coerce_number("9,99", ".") == 999
        assert coerce_number("1,234.5", ".") == 1234.5

    def test_explicit_comma_policy(self) -> None:
        """Verify the ',' policy treats every dot as a thousands separator."""
        assert coerce_number("1.234", ",") == 1234
        assert coerce_number("1.234,5", ",") == 1234.5

    @pytest.mark.parametrize("raw", ["1,200", "9,99", "1.234,56 EUR", "$1,234,567", "n/a"])
    def test_idempotent(self, raw) -> None:
        """Verify coercing an already coerced value changes nothing."""
        once = coerce_number(raw)
        assert coerce_number(once) == once


class TestCoerceBoolean:
    """Test coerce_boolean()."""

    @pytest.mark.parametrize("raw", ["true", "YES", " y ", "on", "1", 1, True])
    def test_true_values(self, raw) -> None:
        """Verify accepted truthy tokens."""
        assert coerce_boolean(raw) is True

    @pytest.mark.parametrize("raw", ["false", "No", "n", "off", "0", 0, False])
    def test_false_values(self, raw) -> None:
        """Verify accepted falsy tokens."""
        assert coerce_boolean(raw) is False

    @pytest.mark.parametrize("raw", [None, "", "maybe", 2, "1.0"])
    def test_unknown_values(self, raw) -> None:
        """Verify anything else is None."""
        assert coerce_boolean(raw) is None


class TestCoerceJsonAndText:
    """Test coerce_json() and coerce_text()."""

    def test_json_strings_are_parsed(self) -> None:
        """Verify strings holding JSON documents are decoded."""
        assert coerce_json('{"a": 1}') == {"a": 1}
        assert coerce_json("[1, 2]") == [1, 2]

    def test_json_keeps_other_values(self) -> None:
        """Verify structured values pass through and broken JSON stays text."""
        assert coerce_json({"a": 1}) == {"a": 1}
        assert coerce_json("[broken") == "[broken"
        assert coerce_json(" plain ") == "plain"
        assert coerce_json(None) is None

    def test_text(self) -> None:
        """Verify scalars and structures render as strings."""
        assert coerce_text(" Widget ") == "Widget"
        assert coerce_text(True) == "true"
        assert coerce_text(5) == "5"
        assert coerce_text({"a": [1, 2]}) == '{"a":[1,2]}'
        assert coerce_text(None) is None


class TestCoerceValue:
    """Test datatype dispatch."""

    def test_dispatch(self) -> None:
        """Verify each datatype selects its coercion."""
        assert coerce_value("1,200", "number") == 1200
        assert coerce_value("yes", "bool") is True
        assert coerce_value('{"a": 1}', "json") == {"a": 1}
        assert coerce_value(12, "text") == "12"

    def test_date_and_unknown_are_text(self) -> None:
        """Verify dates are stored as given."""
        assert coerce_value(" 2024-01-31 ", "date") == "2024-01-31"
        assert coerce_value(3, "colour") == "3"

    def test_separator_policy_forwarded(self) -> None:
        """Verify the separator policy reaches number coercion."""
        assert coerce_value("1.234", "number", ",") == 1234

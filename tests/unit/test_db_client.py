"""Unit tests for the filter and sort parsing in db_client."""

import pytest

from src.core import db_client


@pytest.mark.unit
class TestSingleComparison:
    """Tests for _parse_single_comparison."""

    def test_equality_with_string(self):
        """Test a plain equality comparison."""
        condition, param = db_client._parse_single_comparison('category = "work"')

        assert condition == "category = ?"
        assert param == "work"

    def test_boolean_values_bind_as_booleans(self):
        """Test that true/false become Python booleans."""
        _, param = db_client._parse_single_comparison('completed = "true"')

        assert param is True

    def test_range_operator(self):
        """Test a less-than comparison on a timestamp."""
        condition, param = db_client._parse_single_comparison('due_date < "2024-03-15T00:00:00.000000Z"')

        assert condition == "due_date < ?"
        assert param == "2024-03-15T00:00:00.000000Z"

    def test_contains_wraps_and_escapes_wildcards(self):
        """Test that ~ becomes LIKE with literal % and _ escaped."""
        condition, param = db_client._parse_single_comparison('text ~ "50%_off"')

        assert condition == "text LIKE ? ESCAPE '\\'"
        assert param == "%50\\%\\_off%"

    def test_escaped_double_quotes(self):
        """Test that the parser undoes sanitize_param escaping."""
        query = f'text = "{db_client.sanitize_param(chr(34).join(["a", "b", "c"]))}"'

        _, param = db_client._parse_single_comparison(query)

        assert param == 'a"b"c'

    def test_single_quotes_escaped(self):
        """Test escaped single quotes inside a single-quoted value."""
        _, param = db_client._parse_single_comparison("text = 'O\\'Reilly'")

        assert param == "O'Reilly"

    def test_injection_attempt_stays_in_value(self):
        """Test that a quote-and-operator payload stays inside the bound parameter."""
        payload = 'x" || completed = "true'
        query = f'text = "{db_client.sanitize_param(payload)}"'

        condition, param = db_client._parse_single_comparison(query)

        assert condition == "text = ?"
        assert param == payload

    def test_invalid_syntax_raises(self):
        """Test that a malformed comparison raises ValueError."""
        with pytest.raises(ValueError, match="Invalid filter syntax"):
            db_client._parse_single_comparison("text == work")


@pytest.mark.unit
class TestParseFilter:
    """Tests for parse_filter and split_top_level."""

    def test_empty_filter(self):
        """Test that no filter yields no WHERE clause."""
        assert db_client.parse_filter("") == ("", [])

    def test_and_with_or_group(self):
        """Test an AND of a comparison and a parenthesized OR group."""
        where, params = db_client.parse_filter('category = "work" && (text ~ "milk" || description ~ "milk")')

        assert where == "category = ? AND (text LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\')"
        assert params == ["work", "%milk%", "%milk%"]

    def test_separators_inside_quotes_are_ignored(self):
        """Test that && inside a quoted value does not split the expression."""
        parts = db_client.split_top_level('text = "salt && pepper" && completed = "false"', "&&")

        assert parts == ['text = "salt && pepper"', 'completed = "false"']


@pytest.mark.unit
class TestParseSort:
    """Tests for parse_sort."""

    def test_default_is_id(self):
        """Test that an empty sort falls back to id ascending."""
        assert db_client.parse_sort("") == "id ASC"

    def test_mixed_directions(self):
        """Test comma-separated keys with descending prefixes."""
        assert db_client.parse_sort("-priority_rank,due_date,id") == "priority_rank DESC, due_date ASC, id ASC"

    def test_rejects_non_identifier(self):
        """Test that a sort key with SQL in it is refused."""
        with pytest.raises(ValueError, match="Invalid field name"):
            db_client.parse_sort("id; DROP TABLE tasks")


@pytest.mark.unit
def test_sanitize_param_escapes_quotes_and_backslashes():
    """Test that sanitize_param escapes characters that would break out of a quoted value."""
    assert db_client.sanitize_param('say "hi"\\') == 'say \\"hi\\"\\\\'

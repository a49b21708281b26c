# tests/unit/core/test_names.py
"""Tests for node-name parsing and argument-name derivation."""

import pytest

from trellis.contracts import InvalidNodeNameError, Visibility
from trellis.core.names import NodeName, arg_name_of, plain_name


class TestNodeNameParse:
    """Prefixes, member paths and rejected spellings."""

    @pytest.mark.parametrize(
        ("raw", "name", "visibility"),
        [
            ("user", "user", Visibility.NORMAL),
            ("?user", "user", Visibility.VOID),
            ("!user", "user", Visibility.SILENT),
            ("?user.name", "user.name", Visibility.VOID),
        ],
    )
    def test_prefix_sets_visibility(self, raw: str, name: str, visibility: Visibility) -> None:
        parsed = NodeName.parse(raw)

        assert parsed.name == name
        assert parsed.visibility is visibility
        assert parsed.spelled == raw

    def test_member_path_splits_head_and_members(self) -> None:
        parsed = NodeName.parse("config.db.host")

        assert parsed.head == "config"
        assert parsed.members == ("db", "host")

    @pytest.mark.parametrize("raw", ["", "?", "!", "?!user", "!?user", "user..name", "user.", ".user"])
    def test_malformed_names_rejected(self, raw: str) -> None:
        with pytest.raises(InvalidNodeNameError, match="invalid node name"):
            NodeName.parse(raw)

    def test_non_string_rejected(self) -> None:
        with pytest.raises(InvalidNodeNameError):
            NodeName.parse(42)  # type: ignore[arg-type]


class TestArgName:
    """The argument a reference satisfies."""

    @pytest.mark.parametrize(
        ("reference", "expected"),
        [
            ("two-fromNum", "two"),
            ("config.secret", "secret"),
            ("?config.secret", "secret"),
            ("!user", "user"),
            ("a.b-alias", "b"),
            ("plain", "plain"),
        ],
    )
    def test_arg_name_of(self, reference: str, expected: str) -> None:
        assert arg_name_of(reference) == expected

    def test_parsed_name_agrees_with_function(self) -> None:
        assert NodeName.parse("?two-fromNum").arg_name == "two"


class TestPlainName:
    """Sites that require an unprefixed name."""

    def test_plain_name_accepts_unprefixed(self) -> None:
        assert plain_name("user", site="configure").name == "user"

    @pytest.mark.parametrize("raw", ["?user", "!user"])
    def test_plain_name_rejects_prefix(self, raw: str) -> None:
        with pytest.raises(InvalidNodeNameError, match="configure targets must be plain names"):
            plain_name(raw, site="configure")

"""Tests for building the schema model from source text."""

import pytest

from stateql.errors import SchemaParseError, Severity
from stateql.model import ActionField, ComputedField, ManyRelationField, ScalarField
from stateql.parsing import parse_source, split_blocks
from stateql.parsing.entity_parser import SourceLine


class TestSplitBlocks:
    """Tests for partitioning lines into entity blocks."""

    def test_blocks_in_order(self):
        blocks, orphans = split_blocks(
            ["User:", "- id is text", "", "Post:", "- title is text", "- body is text"]
        )

        assert [b.header.text for b in blocks] == ["User:", "Post:"]
        assert blocks[0].fields == (SourceLine(2, "- id is text"),)
        assert [f.number for f in blocks[1].fields] == [5, 6]
        assert orphans == []

    def test_fields_before_first_header(self):
        blocks, orphans = split_blocks(["- id is text", "User:"])

        assert orphans == [SourceLine(1, "- id is text")]
        assert len(blocks) == 1
        assert blocks[0].fields == ()

    def test_blank_lines_and_comments_skipped(self):
        blocks, orphans = split_blocks(["# users", "", "  User:  ", "   ", "  - id is text"])

        assert len(blocks) == 1
        assert blocks[0].header == SourceLine(3, "User:")
        assert blocks[0].fields == (SourceLine(5, "- id is text"),)

    def test_empty_source(self):
        assert split_blocks([]) == ([], [])


class TestParseSource:
    """Tests for parse_source."""

    def test_entity_with_fields(self):
        result = parse_source(
            "User:\n"
            "- name is text\n"
            "- friends is many User thru befriendedBy\n"
            "- share is action thru share(:email)\n"
            "- score is number thru sum(points)\n"
        )

        assert result.ok
        assert result.diagnostics == []
        user = result.model.get("User")
        assert user is not None
        assert [f.name for f in user.fields] == ["name", "friends", "share", "score"]
        assert isinstance(user.fields[0], ScalarField)
        assert isinstance(user.fields[1], ManyRelationField)
        assert isinstance(user.fields[2], ActionField)
        assert isinstance(user.fields[3], ComputedField)

    def test_field_count_and_order(self):
        names = [f"f{i}" for i in range(12)]
        source = "Thing:\n" + "\n".join(f"- {n} is text" for n in names)

        model = parse_source(source).raise_for_errors()

        assert len(model) == 1
        assert [f.name for f in model.get("Thing").fields] == names

    def test_entity_order(self):
        model = parse_source("B:\nA:\nC:\n").raise_for_errors()

        assert [e.name for e in model] == ["B", "A", "C"]

    def test_header_without_colon(self):
        model = parse_source("User\n- id is text").raise_for_errors()

        assert "User" in model

    def test_field_lines_recorded(self):
        model = parse_source("User:\n\n- name is text").raise_for_errors()

        assert model.get("User").line == 1
        assert model.get("User").fields[0].line == 3

    def test_field_without_entity(self):
        result = parse_source("- id is text\nUser:\n- name is text")

        assert not result.ok
        assert [(d.code, d.line) for d in result.errors] == [("FieldWithoutEntity", 1)]
        assert [f.name for f in result.model.get("User").fields] == ["name"]

    def test_every_malformed_line_reported(self):
        result = parse_source(
            "User:\n"
            "- id text\n"
            "- name is text\n"
            "- friends is many User and befriendedBy\n"
        )

        assert [(d.code, d.line) for d in result.errors] == [
            ("MalformedFieldDeclaration", 2),
            ("InvalidRelationshipClause", 4),
        ]
        assert [f.name for f in result.model.get("User").fields] == ["name"]

    def test_empty_header(self):
        result = parse_source(":\n- id is text")

        assert [d.code for d in result.errors] == ["MalformedEntityHeader"]
        assert len(result.model) == 0

    def test_duplicate_entity(self):
        result = parse_source("User:\n- name is text\nuser:\n- age is number")

        assert [(d.code, d.line) for d in result.errors] == [("DuplicateDefinition", 3)]
        assert [e.name for e in result.model] == ["User"]

    def test_duplicate_field(self):
        result = parse_source("User:\n- name is text\n- Name is text")

        assert [(d.code, d.line) for d in result.errors] == [("DuplicateDefinition", 3)]
        assert len(result.model.get("User").fields) == 1

    def test_unknown_type_reported(self):
        result = parse_source("Doc:\n- data is json\n- size is number thru sum(x)")

        assert result.ok
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.severity is Severity.WARNING
        assert warning.code == "UnknownPrimitiveType"
        assert warning.line == 2
        assert "json" in warning.message

    def test_type_lookup_is_case_insensitive(self):
        result = parse_source("Doc:\n- title is TEXT")

        assert result.warnings == []

    def test_raise_for_errors(self):
        result = parse_source("User:\n- id text\n- x is many y")

        with pytest.raises(SchemaParseError) as exc_info:
            result.raise_for_errors()

        assert len(exc_info.value.diagnostics) == 2
        assert exc_info.value.line == 2

"""Tests for @entity and @index comment annotations."""
from dashgen.parser.annotations import comment_lines, parse_entity_marker, parse_index_comment
from dashgen.parser.types import IndexField


def test_entity_marker_with_and_without_db():
    assert parse_entity_marker("@entity db:users").db_name == "users"
    assert parse_entity_marker("@entity").db_name == ""
    assert parse_entity_marker("  @entity   db:order_archive  ").db_name == "order_archive"


def test_entity_marker_requires_exact_word():
    assert parse_entity_marker("@entityfoo") is None
    assert parse_entity_marker("see @entity db:users") is None
    assert parse_entity_marker("entity db:users") is None


def test_index_comment_fields_and_options():
    index = parse_index_comment("@index name:1,created_at:-1 unique sparse name:by_name")

    assert index.fields == (
        IndexField(name="name", direction=1),
        IndexField(name="created_at", direction=-1),
    )
    assert index.unique
    assert index.sparse
    assert index.name == "by_name"


def test_index_comment_bare_field_defaults_to_ascending():
    index = parse_index_comment("@index email")
    assert index.fields == (IndexField(name="email", direction=1),)
    assert not index.unique


def test_index_comment_special_types():
    index = parse_index_comment("@index email:text")
    assert index.fields == (IndexField(name="email", direction=1, special_type="text"),)

    index = parse_index_comment("@index location:2dsphere,kind:1")
    assert index.fields[0].special_type == "2dsphere"
    assert index.fields[1].special_type == ""


def test_index_comment_without_fields_is_ignored():
    assert parse_index_comment("@index") is None
    assert parse_index_comment("@indexes email:1") is None


def test_block_comment_lines():
    raw = "/*\n * @entity db:users\n * @index email:1 unique\n */"
    assert comment_lines(raw) == ["@entity db:users", "@index email:1 unique"]
    assert comment_lines("// @entity") == ["@entity"]

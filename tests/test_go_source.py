"""Tests for the Go declaration front end."""
import tempfile
from pathlib import Path

import pytest

from dashgen.core.errors import FileSystemError, SourceSyntaxError
from dashgen.parser.go_source import (
    Ident,
    ListType,
    MapType,
    Pointer,
    Selector,
    StructType,
    TokType,
    parse_go_file,
    parse_go_source,
    parse_type_text,
    tokenize,
)

FIXTURES = Path(__file__).parent / "fixtures" / "project"


def test_tokenize_strings_comments_and_newlines():
    tokens, comments = tokenize('x := "a\\"b" // note\n`raw\nline`')

    kinds = [t.type for t in tokens]
    assert TokType.NEWLINE in kinds
    assert tokens[2].type is TokType.STRING
    assert tokens[2].value == 'a"b'
    assert tokens[-1].type is TokType.EOF
    assert tokens[-2].type is TokType.RAW_STRING
    assert tokens[-2].value == "raw\nline"
    assert comments[0].text == "// note"
    assert not comments[0].own_line


def test_parse_simple_struct():
    source = parse_go_source(
        'package user\n'
        '\n'
        '// @entity db:users\n'
        'type User struct {\n'
        '\tID   string `json:"id"`\n'
        '\tA, B int\n'
        '}\n',
        "data.go",
    )

    assert source.package == "user"
    assert len(source.decls) == 1
    decl = source.decls[0]
    assert not decl.grouped
    assert [c.text for c in decl.doc] == ["// @entity db:users"]
    spec = decl.specs[0]
    assert spec.name == "User"
    assert isinstance(spec.type, StructType)
    assert spec.type.fields[0].names == ("ID",)
    assert spec.type.fields[0].tag == 'json:"id"'
    assert spec.type.fields[1].names == ("A", "B")
    assert spec.type.fields[1].tag is None


def test_grouped_declaration_docs_attach_to_specs():
    source = parse_go_source(
        'package order\n'
        'type (\n'
        '\t// @entity\n'
        '\tOrder struct {\n'
        '\t\tID string\n'
        '\t}\n'
        '\n'
        '\tItem struct{ SKU string }\n'
        ')\n',
    )

    decl = source.decls[0]
    assert decl.grouped
    assert decl.doc is None
    assert [s.name for s in decl.specs] == ["Order", "Item"]
    assert [c.text for c in decl.specs[0].doc] == ["// @entity"]
    assert decl.specs[1].doc is None


def test_blank_line_separates_doc_comment():
    source = parse_go_source('package p\n// @entity\n\ntype User struct{}\n')
    assert source.decls[0].doc is None


def test_trailing_comment_is_not_a_doc_comment():
    source = parse_go_source('package p\nvar x = 1 // @entity\ntype User struct{}\n')
    assert source.decls[0].doc is None


def test_embedded_members_and_field_types():
    source = parse_go_source(
        'package p\n'
        'type T struct {\n'
        '\tBase\n'
        '\t*mixins.Audit `bson:",inline"`\n'
        '\tTags    []string\n'
        '\tMeta    map[string]interface{}\n'
        '\tWhen    *time.Time\n'
        '\tGrid    [3][3]int\n'
        '\tPage    Page[Item]\n'
        '\tHandler func(int) error\n'
        '}\n'
    )

    fields = source.decls[0].specs[0].type.fields
    assert fields[0].names == () and fields[0].type == Ident("Base")
    assert fields[1].names == () and fields[1].tag == 'bson:",inline"'
    assert fields[2].type == ListType(Ident("string"))
    assert isinstance(fields[3].type, MapType)
    assert fields[4].type == Pointer(Selector("time", "Time"))
    assert fields[5].type.render() == "[3][3]int"
    assert fields[6].type.render() == "Page[Item]"
    assert fields[7].type.render() == "func"


def test_functions_and_other_declarations_are_skipped():
    source = parse_go_source(
        'package p\n'
        'import (\n\t"fmt"\n)\n'
        'const (\n\tA = iota\n\tB\n)\n'
        'var cache = map[string]int{"a": 1}\n'
        'func (t *T) Name() string {\n\tif t == nil {\n\t\treturn "}"\n\t}\n\treturn fmt.Sprint(t)\n}\n'
        'type T struct{ N string }\n'
        'func Generic[K comparable](k K) {}\n'
    )

    assert [s.name for d in source.decls for s in d.specs] == ["T"]


def test_generic_and_alias_types():
    source = parse_go_source(
        'package p\n'
        'type List[T any] struct { Items []T }\n'
        'type ID = string\n'
        'type Buf [16]byte\n'
    )

    specs = [d.specs[0] for d in source.decls]
    assert isinstance(specs[0].type, StructType)
    assert specs[1].type == Ident("string")
    assert specs[2].type.render() == "[16]byte"


@pytest.mark.parametrize("text, message", [
    ('type User struct {}\n', "expected 'package'"),
    ('package p\ntype User struct {\n\tName string\n', "expected '}'"),
    ('package p\nvar s = "open\n', "string literal not terminated"),
    ('package p\n/* never closed\n', "comment not terminated"),
    ('package p\nfunc f() { )\n', "expected '}'"),
    ('package p\nx := 1\n', "outside function body"),
    ('package p\ntype T struct { Name string Other }\n', "in struct type"),
])
def test_syntax_errors_carry_location(text, message):
    with pytest.raises(SourceSyntaxError) as exc_info:
        parse_go_source(text, "model/p/data.go")

    error = exc_info.value
    assert message in error.message
    assert error.path == "model/p/data.go"
    assert error.line is not None
    assert str(error).startswith("parse model/p/data.go:")


def test_parse_type_text():
    assert parse_type_text("*string") == Pointer(Ident("string"))
    assert parse_type_text("[]time.Time") == ListType(Selector("time", "Time"))
    with pytest.raises(SourceSyntaxError):
        parse_type_text("[]string extra")


def test_parse_go_file_fixture():
    source = parse_go_file(FIXTURES / "model" / "order" / "data.go")

    assert source.package == "order"
    names = [s.name for d in source.decls for s in d.specs]
    assert names == ["Order", "LineItem", "Point"]


def test_parse_go_file_errors():
    with tempfile.TemporaryDirectory() as temp_dir:
        missing = Path(temp_dir) / "missing.go"
        with pytest.raises(FileSystemError):
            parse_go_file(missing)

        binary = Path(temp_dir) / "binary.go"
        binary.write_bytes(b"package p\n\xff\xfe\n")
        with pytest.raises(SourceSyntaxError):
            parse_go_file(binary)

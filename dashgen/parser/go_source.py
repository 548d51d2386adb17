"""Go declaration front end.

Tokenizes a Go source file and builds a small syntax tree of its type
declarations, keeping the comment groups attached to them. Function bodies and
var/const/import declarations are skipped structurally (brackets must still
balance), so a file that is not valid Go at this level is rejected with a
SourceSyntaxError instead of yielding a partial set of declarations.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from dashgen.core.errors import FileSystemError, SourceSyntaxError

# -----------------------------
# Tokenization

class TokType(Enum):
    IDENT      = auto()
    NUMBER     = auto()
    STRING     = auto()   # "..."
    RAW_STRING = auto()   # `...`
    CHAR       = auto()   # '.'
    PUNCT      = auto()
    NEWLINE    = auto()
    EOF        = auto()


@dataclass
class Token:
    type: TokType
    value: str
    line: int
    col: int


@dataclass
class Comment:
    text: str
    line: int
    end_line: int
    own_line: bool  # nothing but whitespace precedes it on its line


# longest first
_OPERATORS = [
    "<<=", ">>=", "&^=", "...",
    "&&", "||", "<-", "++", "--", "==", "!=", "<=", ">=", ":=",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>", "&^",
]
_SINGLE = set("+-*/%&|^<>=!()[]{},;.:~")
_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}
_NUMBER_CHAR = re.compile(r"[0-9A-Za-z_.]")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}


def _unescape(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(0)), body)


def tokenize(text: str, path: Union[str, Path] = "<source>") -> Tuple[List[Token], List[Comment]]:
    """Split Go source into tokens and comments.

    String tokens carry their decoded contents (no quotes). NEWLINE tokens are
    kept since they terminate declarations.
    """
    tokens: List[Token] = []
    comments: List[Comment] = []
    i = 0
    line = 1
    col = 1
    n = len(text)
    line_has_code = False

    def error(message: str, at_line: int, at_col: int):
        raise SourceSyntaxError(path, message, at_line, at_col)

    def add(tt: TokType, v: str, at_line: int, at_col: int):
        nonlocal line_has_code
        tokens.append(Token(tt, v, at_line, at_col))
        if tt is not TokType.NEWLINE:
            line_has_code = True

    while i < n:
        ch = text[i]

        if ch == "\n":
            add(TokType.NEWLINE, "\n", line, col)
            i += 1
            line += 1
            col = 1
            line_has_code = False
            continue

        if ch in " \t\r\ufeff":
            i += 1
            col += 1
            continue

        # line comment
        if text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            comments.append(Comment(text[i:end], line, line, not line_has_code))
            col += end - i
            i = end
            continue

        # block comment
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                error("comment not terminated", line, col)
            body = text[i:end + 2]
            start_line, own_line = line, not line_has_code
            newlines = body.count("\n")
            comments.append(Comment(body, start_line, start_line + newlines, own_line))
            if newlines:
                if line_has_code:
                    add(TokType.NEWLINE, "\n", line, col)
                line += newlines
                col = len(body) - body.rfind("\n")
                line_has_code = False
            else:
                col += len(body)
            i = end + 2
            continue

        # interpreted string
        if ch == '"':
            start_col = col
            j = i + 1
            while j < n and text[j] != '"':
                if text[j] == "\n":
                    error("string literal not terminated", line, start_col)
                j += 2 if text[j] == "\\" else 1
            if j >= n:
                error("string literal not terminated", line, start_col)
            add(TokType.STRING, _unescape(text[i + 1:j]), line, start_col)
            col += j + 1 - i
            i = j + 1
            continue

        # raw string
        if ch == "`":
            end = text.find("`", i + 1)
            if end == -1:
                error("raw string literal not terminated", line, col)
            body = text[i + 1:end]
            add(TokType.RAW_STRING, body, line, col)
            newlines = body.count("\n")
            if newlines:
                line += newlines
                col = len(body) - body.rfind("\n") + 1
            else:
                col += len(body) + 2
            i = end + 1
            continue

        # rune literal
        if ch == "'":
            start_col = col
            j = i + 1
            while j < n and text[j] != "'":
                if text[j] == "\n":
                    error("rune literal not terminated", line, start_col)
                j += 2 if text[j] == "\\" else 1
            if j >= n:
                error("rune literal not terminated", line, start_col)
            add(TokType.CHAR, text[i + 1:j], line, start_col)
            col += j + 1 - i
            i = j + 1
            continue

        # identifiers
        if ch == "_" or ch.isalpha():
            start = i
            while i < n and (text[i] == "_" or text[i].isalnum()):
                i += 1
            add(TokType.IDENT, text[start:i], line, col)
            col += i - start
            continue

        # numbers
        if ch.isdigit() or (ch == "." and i + 1 < n and text[i + 1].isdigit()):
            start = i
            while i < n:
                c = text[i]
                if c in "+-" and text[i - 1] in "eEpP" and not text[start:i].lower().startswith("0x"):
                    i += 1
                elif c in "+-" and text[i - 1] in "pP":
                    i += 1
                elif _NUMBER_CHAR.match(c):
                    i += 1
                else:
                    break
            add(TokType.NUMBER, text[start:i], line, col)
            col += i - start
            continue

        # operators and punctuation
        for op in _OPERATORS:
            if text.startswith(op, i):
                add(TokType.PUNCT, op, line, col)
                i += len(op)
                col += len(op)
                break
        else:
            if ch in _SINGLE:
                add(TokType.PUNCT, ch, line, col)
                i += 1
                col += 1
            else:
                error(f"invalid character {ch!r}", line, col)

    tokens.append(Token(TokType.EOF, "", line, col))
    return tokens, comments


# -----------------------------
# Syntax tree

@dataclass
class Ident:
    name: str
    args: Tuple["TypeExpr", ...] = ()

    def render(self) -> str:
        if self.args:
            return f"{self.name}[{', '.join(a.render() for a in self.args)}]"
        return self.name


@dataclass
class Selector:
    package: str
    name: str
    args: Tuple["TypeExpr", ...] = ()

    def render(self) -> str:
        text = f"{self.package}.{self.name}"
        if self.args:
            text += f"[{', '.join(a.render() for a in self.args)}]"
        return text


@dataclass
class Pointer:
    elem: "TypeExpr"

    def render(self) -> str:
        return "*" + self.elem.render()


@dataclass
class ListType:
    elem: "TypeExpr"
    length: Optional[str] = None  # None for slices

    def render(self) -> str:
        return f"[{self.length or ''}]" + self.elem.render()


@dataclass
class MapType:
    key: "TypeExpr"
    value: "TypeExpr"

    def render(self) -> str:
        return f"map[{self.key.render()}]{self.value.render()}"


@dataclass
class OtherType:
    """Interface, func, chan and inline struct types; rendered opaquely."""
    text: str = "interface{}"

    def render(self) -> str:
        return self.text


@dataclass
class FieldNode:
    names: Tuple[str, ...]  # empty for embedded members
    type: "TypeExpr"
    tag: Optional[str]
    line: int


@dataclass
class StructType:
    fields: List[FieldNode] = field(default_factory=list)

    def render(self) -> str:
        return "struct{...}" if self.fields else "struct{}"


TypeExpr = Union[Ident, Selector, Pointer, ListType, MapType, OtherType, StructType]


@dataclass
class TypeSpec:
    name: str
    type: TypeExpr
    doc: Optional[List[Comment]]
    line: int


@dataclass
class GenDecl:
    doc: Optional[List[Comment]]
    specs: List[TypeSpec]
    grouped: bool = False


@dataclass
class SourceFile:
    path: str
    package: str
    decls: List[GenDecl]


# -----------------------------
# Parser

class GoParser:
    def __init__(self, tokens: List[Token], comments: List[Comment], path: Union[str, Path] = "<source>"):
        self.tokens = tokens
        self.pos = 0
        self.path = str(path)
        self._doc_by_end_line: Dict[int, Comment] = {
            c.end_line: c for c in comments if c.own_line
        }

    # token helpers

    def peek(self, offset: int = 0) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type is not TokType.EOF:
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        tok = self.peek()
        return tok.type in (TokType.PUNCT, TokType.IDENT) and tok.value == value

    def error(self, message: str, tok: Optional[Token] = None):
        tok = tok or self.peek()
        raise SourceSyntaxError(self.path, message, tok.line, tok.col)

    def expect(self, value: str) -> Token:
        if not self.at(value):
            self.error(f"expected {value!r}, found {self._describe(self.peek())}")
        return self.advance()

    def expect_ident(self) -> Token:
        tok = self.peek()
        if tok.type is not TokType.IDENT:
            self.error(f"expected identifier, found {self._describe(tok)}")
        return self.advance()

    @staticmethod
    def _describe(tok: Token) -> str:
        if tok.type is TokType.EOF:
            return "EOF"
        if tok.type is TokType.NEWLINE:
            return "newline"
        return repr(tok.value)

    def _skip_separators(self) -> None:
        while self.peek().type is TokType.NEWLINE or self.at(";"):
            self.advance()

    def _doc_for(self, tok: Token) -> Optional[List[Comment]]:
        group: List[Comment] = []
        comment = self._doc_by_end_line.get(tok.line - 1)
        while comment is not None:
            group.insert(0, comment)
            comment = self._doc_by_end_line.get(comment.line - 1)
        return group or None

    # structural skipping

    def _skip_balanced(self) -> None:
        """Skip from an opening bracket to its matching closer."""
        opener = self.advance()
        stack = [_OPENERS[opener.value]]
        while stack:
            tok = self.advance()
            if tok.type is TokType.EOF:
                self.error(f"expected {stack[-1]!r}, found EOF", tok)
            if tok.type is not TokType.PUNCT:
                continue
            if tok.value in _OPENERS:
                stack.append(_OPENERS[tok.value])
            elif tok.value in _CLOSERS:
                if tok.value != stack[-1]:
                    self.error(f"expected {stack[-1]!r}, found {tok.value!r}", tok)
                stack.pop()

    def _skip_statement(self) -> None:
        """Skip tokens up to the end of the line, honouring brackets."""
        while True:
            tok = self.peek()
            if tok.type in (TokType.NEWLINE, TokType.EOF) or self.at(";"):
                return
            if tok.type is TokType.PUNCT and tok.value in _OPENERS:
                self._skip_balanced()
            elif tok.type is TokType.PUNCT and tok.value in _CLOSERS:
                self.error(f"unexpected {tok.value!r}", tok)
            else:
                self.advance()

    def _skip_simple_decl(self) -> None:
        self.advance()  # import / var / const
        if self.at("("):
            self._skip_balanced()
        else:
            self._skip_statement()

    def _skip_func(self) -> None:
        self.advance()  # func
        while True:
            tok = self.peek()
            if tok.type in (TokType.NEWLINE, TokType.EOF) or self.at(";"):
                return  # declaration without body
            if self.at("{"):
                prev = self.tokens[self.pos - 1]
                if prev.type is TokType.IDENT and prev.value in ("struct", "interface"):
                    self._skip_balanced()
                    continue
                self._skip_balanced()  # body
                return
            if tok.type is TokType.PUNCT and tok.value in _OPENERS:
                self._skip_balanced()
            elif tok.type is TokType.PUNCT and tok.value in _CLOSERS:
                self.error(f"unexpected {tok.value!r}", tok)
            else:
                self.advance()

    # grammar

    def parse_file(self) -> SourceFile:
        self._skip_separators()
        if not self.at("package"):
            self.error(f"expected 'package', found {self._describe(self.peek())}")
        self.advance()
        package = self.expect_ident().value

        decls: List[GenDecl] = []
        while True:
            self._skip_separators()
            tok = self.peek()
            if tok.type is TokType.EOF:
                break
            if tok.type is TokType.IDENT and tok.value == "type":
                decls.append(self._parse_type_decl())
            elif tok.type is TokType.IDENT and tok.value in ("import", "var", "const"):
                self._skip_simple_decl()
            elif tok.type is TokType.IDENT and tok.value == "func":
                self._skip_func()
            else:
                self.error(f"non-declaration statement outside function body: {self._describe(tok)}", tok)
            self._expect_decl_end()

        return SourceFile(path=self.path, package=package, decls=decls)

    def _expect_decl_end(self) -> None:
        tok = self.peek()
        if tok.type in (TokType.NEWLINE, TokType.EOF) or self.at(";"):
            return
        self.error(f"unexpected {self._describe(tok)} after top level declaration", tok)

    def _parse_type_decl(self) -> GenDecl:
        keyword = self.advance()
        doc = self._doc_for(keyword)

        if not self.at("("):
            spec = self._parse_type_spec(doc=None)
            return GenDecl(doc=doc, specs=[spec], grouped=False)

        self.advance()
        specs: List[TypeSpec] = []
        while True:
            self._skip_separators()
            if self.at(")"):
                self.advance()
                break
            if self.peek().type is TokType.EOF:
                self.error("expected ')', found EOF")
            spec_doc = self._doc_for(self.peek())
            specs.append(self._parse_type_spec(doc=spec_doc))
            tok = self.peek()
            if not (tok.type is TokType.NEWLINE or self.at(";") or self.at(")")):
                self.error(f"unexpected {self._describe(tok)} in type declaration", tok)
        return GenDecl(doc=doc, specs=specs, grouped=True)

    def _looks_like_type_params(self) -> bool:
        # type List[T any] ... versus type Buf [16]byte
        first, second = self.peek(1), self.peek(2)
        if first.type is not TokType.IDENT:
            return False
        return second.type is TokType.IDENT or (
            second.type is TokType.PUNCT and second.value in (",", "*", "~", "[", "(")
        )

    def _parse_type_spec(self, doc: Optional[List[Comment]]) -> TypeSpec:
        name_tok = self.expect_ident()
        if self.at("[") and self._looks_like_type_params():
            self._skip_balanced()
        if self.at("="):
            self.advance()  # alias
        type_expr = self.parse_type()
        return TypeSpec(name=name_tok.value, type=type_expr, doc=doc, line=name_tok.line)

    def parse_type(self) -> TypeExpr:
        tok = self.peek()

        if tok.type is TokType.IDENT:
            if tok.value == "struct":
                return self._parse_struct()
            if tok.value == "interface":
                self.advance()
                if not self.at("{"):
                    self.error(f"expected '{{', found {self._describe(self.peek())}")
                self._skip_balanced()
                return OtherType("interface{}")
            if tok.value == "map":
                self.advance()
                self.expect("[")
                key = self.parse_type()
                self.expect("]")
                return MapType(key=key, value=self.parse_type())
            if tok.value == "func":
                self.advance()
                self._skip_signature()
                return OtherType("func")
            if tok.value == "chan":
                self.advance()
                if self.at("<-"):
                    self.advance()
                elem = self.parse_type()
                return OtherType("chan " + elem.render())

            self.advance()
            if self.at("."):
                self.advance()
                name = self.expect_ident().value
                return Selector(package=tok.value, name=name, args=self._parse_type_args())
            return Ident(name=tok.value, args=self._parse_type_args())

        if self.at("*"):
            self.advance()
            return Pointer(elem=self.parse_type())

        if self.at("<-"):
            self.advance()
            self.expect("chan")
            elem = self.parse_type()
            return OtherType("<-chan " + elem.render())

        if self.at("["):
            self.advance()
            if self.at("]"):
                self.advance()
                return ListType(elem=self.parse_type())
            length: List[str] = []
            depth = 0
            while not (depth == 0 and self.at("]")):
                t = self.advance()
                if t.type in (TokType.EOF, TokType.NEWLINE):
                    self.error("expected ']' in array type", t)
                if t.type is TokType.PUNCT and t.value in _OPENERS:
                    depth += 1
                elif t.type is TokType.PUNCT and t.value in _CLOSERS:
                    depth -= 1
                length.append(t.value)
            self.advance()
            return ListType(elem=self.parse_type(), length="".join(length))

        if self.at("("):
            self.advance()
            inner = self.parse_type()
            self.expect(")")
            return inner

        self.error(f"expected type, found {self._describe(tok)}")

    def _parse_type_args(self) -> Tuple[TypeExpr, ...]:
        # Only consumed when a '[' directly follows a type name on the same token line
        if not self.at("["):
            return ()
        prev = self.tokens[self.pos - 1]
        bracket = self.peek()
        if bracket.line != prev.line or bracket.col != prev.col + len(prev.value):
            return ()
        self.advance()
        args = [self.parse_type()]
        while self.at(","):
            self.advance()
            args.append(self.parse_type())
        self.expect("]")
        return tuple(args)

    def _skip_signature(self) -> None:
        if not self.at("("):
            self.error(f"expected '(', found {self._describe(self.peek())}")
        self._skip_balanced()
        # result list or single result type
        if self.at("("):
            self._skip_balanced()
        elif self.peek().type is TokType.IDENT or self.at("*") or self.at("["):
            self.parse_type()

    def _parse_struct(self) -> StructType:
        self.advance()  # struct
        self.expect("{")
        fields: List[FieldNode] = []
        while True:
            self._skip_separators()
            if self.at("}"):
                self.advance()
                break
            if self.peek().type is TokType.EOF:
                self.error("expected '}', found EOF")
            fields.append(self._parse_field())
            tok = self.peek()
            if not (tok.type is TokType.NEWLINE or self.at(";") or self.at("}")):
                self.error(f"unexpected {self._describe(tok)} in struct type", tok)
        return StructType(fields=fields)

    def _parse_field(self) -> FieldNode:
        start = self.peek()
        names: Tuple[str, ...] = ()

        if start.type is TokType.IDENT:
            following = self.peek(1)
            embedded = (
                following.type in (TokType.NEWLINE, TokType.STRING, TokType.RAW_STRING, TokType.EOF)
                or (following.type is TokType.PUNCT and following.value in (".", ";", "}"))
                # List[T] embedded generic, as opposed to Buf [16]byte
                or (following.type is TokType.PUNCT and following.value == "["
                    and following.line == start.line
                    and following.col == start.col + len(start.value))
            )
            if not embedded:
                collected = [self.advance().value]
                while self.at(","):
                    self.advance()
                    collected.append(self.expect_ident().value)
                names = tuple(collected)

        type_expr = self.parse_type()

        tag = None
        if self.peek().type in (TokType.STRING, TokType.RAW_STRING):
            tag = self.advance().value
        return FieldNode(names=names, type=type_expr, tag=tag, line=start.line)


def parse_go_source(text: str, path: Union[str, Path] = "<source>") -> SourceFile:
    tokens, comments = tokenize(text, path)
    return GoParser(tokens, comments, path).parse_file()


def parse_go_file(path: Union[str, Path]) -> SourceFile:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SourceSyntaxError(path, f"invalid UTF-8: {e}")
    except OSError as e:
        raise FileSystemError(path, e)
    return parse_go_source(text, path)


def parse_type_text(text: str, path: Union[str, Path] = "<type>") -> TypeExpr:
    """Parse a standalone type expression such as ``*time.Time`` or ``[]string``."""
    tokens, _ = tokenize(text, path)
    parser = GoParser(tokens, [], path)
    type_expr = parser.parse_type()
    parser._skip_separators()
    if parser.peek().type is not TokType.EOF:
        parser.error(f"unexpected {parser._describe(parser.peek())} after type {text!r}")
    return type_expr

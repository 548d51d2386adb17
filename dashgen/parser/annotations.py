"""Entity- and index-level annotation comments.

Recognized comment lines::

    // @entity db:users
    // @index email:1 unique
    // @index name:1,created_at:-1 sparse name:by_name_recent
    // @index location:2dsphere
"""
from dataclasses import dataclass
from typing import List, Optional

from dashgen.parser.types import IndexDescriptor, IndexField


ENTITY_MARKER = "@entity"
INDEX_MARKER = "@index"


@dataclass(frozen=True)
class EntityMarker:
    db_name: str = ""


def comment_text(raw: str) -> str:
    """Strip comment delimiters and surrounding whitespace."""
    text = raw.strip()
    if text.startswith("//"):
        text = text[2:]
    elif text.startswith("/*"):
        text = text[2:]
        if text.endswith("*/"):
            text = text[:-2]
    return text.strip()


def comment_lines(raw: str) -> List[str]:
    """A block comment may carry several annotation lines."""
    lines = []
    for line in comment_text(raw).splitlines():
        line = line.strip().lstrip("*").strip()
        if line:
            lines.append(line)
    return lines


def _has_marker(text: str, marker: str) -> bool:
    if not text.startswith(marker):
        return False
    rest = text[len(marker):]
    return rest == "" or rest[0].isspace()


def parse_entity_marker(text: str) -> Optional[EntityMarker]:
    text = text.strip()
    if not _has_marker(text, ENTITY_MARKER):
        return None
    db_name = ""
    for part in text.split()[1:]:
        if part.startswith("db:"):
            db_name = part[len("db:"):]
    return EntityMarker(db_name=db_name)


def _parse_index_field(spec: str) -> IndexField:
    name, sep, value = spec.partition(":")
    name = name.strip()
    value = value.strip()
    if not sep or value == "" or value == "1":
        return IndexField(name=name, direction=1)
    if value == "-1":
        return IndexField(name=name, direction=-1)
    # Anything else is a driver index type (text, 2dsphere, hashed...)
    return IndexField(name=name, direction=1, special_type=value)


def parse_index_comment(text: str) -> Optional[IndexDescriptor]:
    """Parse ``@index <fieldspec>[,<fieldspec>...] [unique] [sparse] [name:<id>]``.

    Returns None when the marker carries no field specification.
    """
    text = text.strip()
    if not _has_marker(text, INDEX_MARKER):
        return None

    parts = text[len(INDEX_MARKER):].split()
    if not parts:
        return None

    fields = tuple(
        _parse_index_field(spec) for spec in parts[0].split(",") if spec.strip()
    )
    if not fields:
        return None

    unique = sparse = False
    name = ""
    for option in parts[1:]:
        if option == "unique":
            unique = True
        elif option == "sparse":
            sparse = True
        elif option.startswith("name:"):
            name = option[len("name:"):]

    return IndexDescriptor(fields=fields, unique=unique, sparse=sparse, name=name)

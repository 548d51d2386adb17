"""Entity extraction: syntax tree (or schema document) to EntityDescriptors.

Only declarations carrying an ``@entity`` marker produce a descriptor. When
both the declaration group and the type spec carry a doc comment, the group's
comment is the one that is read.
"""
import logging
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Sequence, Union

from dashgen.core.errors import SourceSyntaxError
from dashgen.parser.annotations import comment_lines, parse_entity_marker, parse_index_comment
from dashgen.parser.go_source import (
    Comment,
    Ident,
    ListType,
    Pointer,
    Selector,
    SourceFile,
    StructType,
    TypeExpr,
    parse_go_file,
    parse_type_text,
)
from dashgen.parser.naming import default_collection_name, naive_plural
from dashgen.parser.tags import parse_struct_tag
from dashgen.parser.types import EntityDescriptor, FieldDescriptor, IndexDescriptor
from dashgen.schemas.definition import (
    DefinitionDocument,
    EntityOptions,
    FieldDefinition,
    IndexDefinition,
    load_definition_document,
)

log = logging.getLogger(__name__)

INT_TYPES = {
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64",
    "byte", "rune",
}
SCHEMA_SUFFIXES = {".yaml", ".yml"}


def semantic_type(type_expr: TypeExpr) -> str:
    """Reduce a type expression to string|int|bool|timestamp|pointer<T>|list<T>|other."""
    if isinstance(type_expr, Ident) and not type_expr.args:
        if type_expr.name == "string":
            return "string"
        if type_expr.name in INT_TYPES:
            return "int"
        if type_expr.name == "bool":
            return "bool"
        return "other"
    if isinstance(type_expr, Selector) and type_expr.package == "time" and type_expr.name == "Time":
        return "timestamp"
    if isinstance(type_expr, Pointer):
        return f"pointer<{semantic_type(type_expr.elem)}>"
    if isinstance(type_expr, ListType):
        return f"list<{semantic_type(type_expr.elem)}>"
    return "other"


def derive_group_path(path: Union[str, Path], project_root: Optional[Union[str, Path]] = None) -> str:
    """Logical namespace of a definition file: its directory from ``model/`` on."""
    path = Path(path)
    parts = PurePosixPath(path.as_posix()).parent.parts
    relative = False
    if project_root is not None:
        try:
            parts = path.resolve().parent.relative_to(Path(project_root).resolve()).parts
            relative = True
        except ValueError:
            pass

    if "model" in parts:
        return "/".join(parts[parts.index("model"):])
    if relative and parts:
        return "/".join(parts)
    return "model"


def _build_entity(
    name: str,
    db_name: str,
    group_path: str,
    fields: Sequence[FieldDescriptor],
    indexes: Sequence[IndexDescriptor],
    source_path: str,
) -> EntityDescriptor:
    return EntityDescriptor(
        source_group_path=group_path,
        name=name,
        plural_name=naive_plural(name),
        storage_collection_name=db_name or default_collection_name(name),
        fields=tuple(fields),
        indexes=tuple(indexes),
        source_path=source_path,
    )


def _read_doc(doc: Optional[List[Comment]]):
    """Return (marker, indexes) found in a doc comment group."""
    marker = None
    indexes: List[IndexDescriptor] = []
    for comment in doc or []:
        for text in comment_lines(comment.text):
            found = parse_entity_marker(text)
            if found is not None:
                marker = found
                continue
            index = parse_index_comment(text)
            if index is not None:
                indexes.append(index)
    return marker, indexes


def _struct_fields(struct: StructType) -> List[FieldDescriptor]:
    fields = []
    for node in struct.fields:
        if not node.names:
            continue  # embedded member
        attrs = parse_struct_tag(node.tag)
        for name in node.names:
            if name == "_":
                continue
            fields.append(FieldDescriptor(
                name=name,
                type=semantic_type(node.type),
                go_type=node.type.render(),
                serialization_name=attrs.serialization_name,
                storage_name=attrs.storage_name,
                validation_rule=attrs.validation_rule,
                index_directive=attrs.index_directive,
                tag=node.tag or "",
            ))
    return fields


def extract_entities(source_file: SourceFile, group_path: str) -> List[EntityDescriptor]:
    """Walk a parsed Go file and build one descriptor per marked struct."""
    entities = []
    for decl in source_file.decls:
        for spec in decl.specs:
            if not isinstance(spec.type, StructType):
                continue

            doc = decl.doc if decl.doc is not None else spec.doc
            marker, indexes = _read_doc(doc)
            if marker is None:
                continue

            entities.append(_build_entity(
                name=spec.name,
                db_name=marker.db_name,
                group_path=group_path,
                fields=_struct_fields(spec.type),
                indexes=indexes,
                source_path=source_file.path,
            ))
    return entities


def _definition_marker(entity, type_name: str, path: str) -> Optional[str]:
    """Normalize the ``entity`` key of a schema type; None means unmarked."""
    if entity is None or entity is False:
        return None
    if entity is True:
        return ""
    if isinstance(entity, EntityOptions):
        return entity.db
    text = entity.strip()
    if not text.startswith("@entity"):
        text = "@entity " + text
    marker = parse_entity_marker(text)
    if marker is None:
        return None
    unknown = [part for part in text.split()[1:] if not part.startswith("db:")]
    if unknown:
        raise SourceSyntaxError(
            path, f"type {type_name}: unsupported entity option {unknown[0]!r} (expected 'db:<name>')"
        )
    return marker.db_name


def _definition_field(definition: FieldDefinition, path: str) -> FieldDescriptor:
    type_expr = parse_type_text(definition.type, path)
    attrs = parse_struct_tag(definition.tag)
    index = definition.index if definition.index is not None else attrs.index_directive
    return FieldDescriptor(
        name=definition.name,
        type=semantic_type(type_expr),
        go_type=type_expr.render(),
        serialization_name=definition.json_name if definition.json_name is not None else attrs.serialization_name,
        storage_name=definition.bson_name if definition.bson_name is not None else attrs.storage_name,
        validation_rule=definition.validate_rule if definition.validate_rule is not None else attrs.validation_rule,
        index_directive=index or None,
        tag=definition.tag or "",
    )


def _definition_index(definition: Union[str, IndexDefinition], path: str) -> IndexDescriptor:
    if isinstance(definition, str):
        text = definition.strip()
        if not text.startswith("@index"):
            text = "@index " + text
    else:
        options = [",".join(definition.fields)]
        if definition.unique:
            options.append("unique")
        if definition.sparse:
            options.append("sparse")
        if definition.name:
            options.append(f"name:{definition.name}")
        text = "@index " + " ".join(options)
    index = parse_index_comment(text)
    if index is None:
        raise SourceSyntaxError(path, f"index declaration has no fields: {definition!r}")
    return index


def extract_document_entities(document: DefinitionDocument, group_path: str, path: str) -> List[EntityDescriptor]:
    entities = []
    for type_def in document.types:
        db_name = _definition_marker(type_def.entity, type_def.name, path)
        if db_name is None:
            continue
        entities.append(_build_entity(
            name=type_def.name,
            db_name=db_name,
            group_path=document.group or group_path,
            fields=[_definition_field(f, path) for f in type_def.fields],
            indexes=[_definition_index(i, path) for i in type_def.indexes],
            source_path=path,
        ))
    return entities


def parse_definition_file(path: Union[str, Path], project_root: Optional[Union[str, Path]] = None) -> List[EntityDescriptor]:
    """Extract every entity declared in one definition file.

    Go sources and YAML schema documents are both accepted. Any parse failure
    raises SourceSyntaxError; a partial entity list is never returned.
    """
    path = Path(path)
    group_path = derive_group_path(path, project_root)
    if path.suffix in SCHEMA_SUFFIXES:
        document = load_definition_document(path)
        return extract_document_entities(document, group_path, str(path))
    return extract_entities(parse_go_file(path), group_path)


def load_entities(paths: Iterable[Union[str, Path]], project_root: Optional[Union[str, Path]] = None) -> List[EntityDescriptor]:
    """Extract entities from files in order: file order, then declaration order."""
    entities: List[EntityDescriptor] = []
    for path in paths:
        found = parse_definition_file(path, project_root)
        log.debug("Parsed %s: %d entities", path, len(found))
        entities.extend(found)
    return entities

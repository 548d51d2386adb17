"""Field-level code fragments: request validation and index creation."""
from typing import List, Optional, Sequence

from dashgen.parser.types import FieldDescriptor, IndexDescriptor, IndexField


# Driver index types accepted as a field-level index directive
SPECIAL_INDEX_TYPES = {"2d", "2dsphere", "hashed"}

BSON_IMPORT = "go.mongodb.org/mongo-driver/bson"
OPTIONS_IMPORT = "go.mongodb.org/mongo-driver/mongo/options"


def _type_matches(field: FieldDescriptor, field_type: Optional[str]) -> bool:
    return field_type is None or field.type == field_type


def uses_rule(fields: Sequence[FieldDescriptor], kind: str, field_type: Optional[str] = None) -> bool:
    """True when some field (optionally of the given semantic type) declares the rule kind."""
    for field in fields:
        if not _type_matches(field, field_type):
            continue
        if any(rule.kind == kind for rule in field.validation_rules):
            return True
    return False


def has_required_fields(fields: Sequence[FieldDescriptor], field_type: Optional[str] = None) -> bool:
    """Check if any field (optionally of one semantic type) has required validation."""
    return uses_rule(fields, "required", field_type)


def _error_return(message: str) -> str:
    return (
        "\t\treturn res.Respond(common.NewErrorResponse("
        f"common.APIStatus.Invalid, \"VALIDATION_FAILED\", \"{message}\"))"
    )


def _check(condition: str, message: str) -> str:
    return f"\tif {condition} {{\n{_error_return(message)}\n\t}}"


def _todo(rule: str, field: FieldDescriptor, entity_lower: str) -> str:
    return f"\t// TODO: Add {rule} validation for {entity_lower}.{field.name} (type: {field.go_type or field.type})"


def _required_validation(field: FieldDescriptor, entity_lower: str) -> str:
    ref = f"{entity_lower}Data.{field.name}"
    message = f"{field.serialization_key} is required"
    if field.type == "string":
        return _check(f'strings.TrimSpace({ref}) == ""', message)
    if field.type == "int":
        return _check(f"{ref} == 0", message)
    if field.type == "timestamp":
        return _check(f"{ref}.IsZero()", message)
    if field.type.startswith("pointer<"):
        return _check(f"{ref} == nil", message)
    if field.type.startswith("list<"):
        return _check(f"len({ref}) == 0", message)
    return _todo("required", field, entity_lower)


def _bound_validation(field: FieldDescriptor, entity_lower: str, kind: str, value: int) -> str:
    ref = f"{entity_lower}Data.{field.name}"
    op = "<" if kind == "min" else ">"
    bound = "at least" if kind == "min" else "at most"
    if field.type == "string":
        return _check(f"len({ref}) {op} {value}", f"{field.serialization_key} must be {bound} {value} characters")
    if field.type == "int":
        return _check(f"{ref} {op} {value}", f"{field.serialization_key} must be {bound} {value}")
    if field.type.startswith("list<"):
        return _check(f"len({ref}) {op} {value}", f"{field.serialization_key} must have {bound} {value} items")
    return _todo(kind, field, entity_lower)


def email_helper_name(entity_lower: str) -> str:
    """Per-entity email check; handlers of all entities share package api."""
    return f"isValid{entity_lower[:1].upper()}{entity_lower[1:]}Email"


def _email_validation(field: FieldDescriptor, entity_lower: str) -> str:
    ref = f"{entity_lower}Data.{field.name}"
    if field.type != "string":
        return _todo("email", field, entity_lower)
    return _check(
        f'{ref} != "" && !{email_helper_name(entity_lower)}({ref})',
        f"{field.serialization_key} must be a valid email address",
    )


def generate_validation(fields: Sequence[FieldDescriptor], entity_lower: str) -> str:
    """Generate validation code for fields with validate tags.

    Rules that cannot be checked for a field's type, and rules that are not
    recognized at all, become TODO lines instead of being dropped.
    """
    validations: List[str] = []

    for field in fields:
        for rule in field.validation_rules:
            if rule.kind == "required":
                validations.append(_required_validation(field, entity_lower))
            elif rule.kind in ("min", "max"):
                validations.append(_bound_validation(field, entity_lower, rule.kind, rule.value))
            elif rule.kind == "email":
                validations.append(_email_validation(field, entity_lower))
            else:
                validations.append(f"\t// TODO: Unsupported validation rule '{rule.raw}' for field {field.name}")

    if not validations:
        return ""
    return "\t// Field validation\n" + "\n".join(validations)


def _index_options(unique: bool = False, sparse: bool = False, name: str = "") -> str:
    options = []
    if unique:
        options.append("Unique: utils.GetPointer(true)")
    if sparse:
        options.append("Sparse: utils.GetPointer(true)")
    if name:
        options.append(f'Name: utils.GetPointer("{name}")')
    if not options:
        return ", nil"
    return ", &options.IndexOptions{\n\t\t" + ",\n\t\t".join(options) + ",\n\t}"


def _create_index(comment: str, entity_lower: str, index_doc: str, options: str) -> str:
    return (
        f"\t// {comment}\n"
        f"\tif err := {entity_lower}Collection.CreateIndex({index_doc}{options}); err != nil {{\n"
        "\t\treturn err\n"
        "\t}"
    )


def _field_index(field: FieldDescriptor, entity_lower: str) -> str:
    directive = field.index_directive
    key = field.storage_key
    unique = sparse = False

    if directive in ("1", "-1"):
        value = directive
    elif directive == "text":
        value = '"text"'
    elif directive == "unique":
        value, unique = "1", True
    elif directive == "sparse":
        value, sparse = "1", True
    elif directive in SPECIAL_INDEX_TYPES:
        value = f'"{directive}"'
    else:
        return f"\t// TODO: Unsupported index type '{directive}' for field {field.name}"

    index_doc = f'bson.D{{{{Key: "{key}", Value: {value}}}}}'
    return _create_index(f"Index for {field.name} field", entity_lower, index_doc, _index_options(unique, sparse))


def generate_field_indexes(fields: Sequence[FieldDescriptor], entity_lower: str) -> str:
    """Single-key index statements from field ``index`` tags."""
    statements = [_field_index(f, entity_lower) for f in fields if f.index_directive]
    if not statements:
        return "\t// No field indexes defined"
    return "\n\n".join(statements)


def _index_key(field: IndexField) -> str:
    if field.special_type:
        return f'{{Key: "{field.name}", Value: "{field.special_type}"}}'
    return f'{{Key: "{field.name}", Value: {field.direction}}}'


def _describe_index(index: IndexDescriptor) -> str:
    parts = []
    for field in index.fields:
        if field.special_type:
            parts.append(f"{field.name}({field.special_type})")
        else:
            parts.append(f"{field.name}({'desc' if field.direction == -1 else 'asc'})")
    comment = "Compound index: " + ", ".join(parts)
    if index.unique:
        comment += " (unique)"
    if index.sparse:
        comment += " (sparse)"
    return comment


def generate_compound_indexes(indexes: Sequence[IndexDescriptor], entity_lower: str) -> str:
    """Index statements from entity-level ``@index`` comments."""
    statements = []
    for index in indexes:
        if not index.fields:
            continue
        index_doc = "bson.D{\n\t\t" + ",\n\t\t".join(_index_key(f) for f in index.fields) + ",\n\t}"
        options = _index_options(index.unique, index.sparse, index.name)
        statements.append(_create_index(_describe_index(index), entity_lower, index_doc, options))
    if not statements:
        return "\t// No compound indexes defined"
    return "\n\n".join(statements)


def has_indexes(fields: Sequence[FieldDescriptor], indexes: Sequence[IndexDescriptor]) -> bool:
    """Check if entity has any indexes defined"""
    return any(f.index_directive for f in fields) or len(indexes) > 0


def index_imports(fields: Sequence[FieldDescriptor], indexes: Sequence[IndexDescriptor], module: str) -> List[str]:
    """Import paths the generated index statements refer to."""
    statements = [s for s in (_field_index(f, "x") for f in fields if f.index_directive) if "CreateIndex" in s]
    statements += [s for s in generate_compound_indexes(indexes, "x").split("\n\n") if "CreateIndex" in s]
    imports = []
    if statements:
        imports.append(BSON_IMPORT)
    if any("options.IndexOptions" in s for s in statements):
        imports.append(OPTIONS_IMPORT)
        imports.append(f"{module}/internal/utils")
    return imports

"""Structured schema documents (``*.entity.yaml``).

The same declarations a Go ``data.go`` carries in comments and tags, written
as plain data::

    group: model/user
    types:
      - name: User
        entity: db:users
        indexes:
          - email:1 unique
          - fields: [name:1, created_at:-1]
            name: by_name_recent
        fields:
          - name: Email
            type: string
            json: email
            bson: email
            validate: required,email
            index: unique
"""
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dashgen.core.errors import FileSystemError, SourceSyntaxError


class EntityOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    db: str = ""


class FieldDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(..., min_length=1)
    type: str = "string"
    tag: Optional[str] = None
    json_name: Optional[str] = Field(None, alias="json")
    bson_name: Optional[str] = Field(None, alias="bson")
    validate_rule: Optional[str] = Field(None, alias="validate")
    index: Optional[str] = None

    @field_validator("index", mode="before")
    @classmethod
    def _index_as_text(cls, value):
        # index: 1 / index: -1 arrive as ints from YAML
        if isinstance(value, bool):
            raise ValueError("index must be a direction or index type, not a boolean")
        if isinstance(value, int):
            return str(value)
        return value


class IndexDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fields: List[str] = Field(..., min_length=1)
    unique: bool = False
    sparse: bool = False
    name: str = ""


class TypeDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    entity: Union[bool, str, EntityOptions, None] = None
    indexes: List[Union[str, IndexDefinition]] = []
    fields: List[FieldDefinition] = []


class DefinitionDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    group: Optional[str] = None
    types: List[TypeDefinition] = []


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def parse_definition_document(text: str, path: Union[str, Path] = "<schema>") -> DefinitionDocument:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line = mark.line + 1 if mark is not None else None
        column = mark.column + 1 if mark is not None else None
        problem = getattr(e, "problem", None) or str(e)
        raise SourceSyntaxError(path, problem, line, column)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SourceSyntaxError(path, "schema document must be a mapping")

    try:
        return DefinitionDocument.model_validate(data)
    except ValidationError as e:
        raise SourceSyntaxError(path, _format_validation_error(e))


def load_definition_document(path: Union[str, Path]) -> DefinitionDocument:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SourceSyntaxError(path, f"invalid UTF-8: {e}")
    except OSError as e:
        raise FileSystemError(path, e)
    return parse_definition_document(text, path)

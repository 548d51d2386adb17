"""Dataclasses for extracted entity metadata."""
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dashgen.parser.tags import ValidationRule, decode_validation_rules


@dataclass(frozen=True)
class FieldDescriptor:
    """One named struct member and the metadata its tag carries."""
    name: str
    type: str  # semantic tag: string|int|bool|timestamp|pointer<T>|list<T>|other
    go_type: str = ""
    serialization_name: str = ""
    storage_name: str = ""
    validation_rule: str = ""
    index_directive: Optional[str] = None
    tag: str = ""

    @property
    def validation_rules(self) -> Tuple[ValidationRule, ...]:
        return decode_validation_rules(self.validation_rule)

    @property
    def storage_key(self) -> str:
        return self.storage_name or self.name.lower()

    @property
    def serialization_key(self) -> str:
        return self.serialization_name or self.name.lower()


@dataclass(frozen=True)
class IndexField:
    name: str
    direction: int = 1  # 1 ascending, -1 descending
    special_type: str = ""  # "text", "2dsphere", ...


@dataclass(frozen=True)
class IndexDescriptor:
    """Compound index declared with an @index comment."""
    fields: Tuple[IndexField, ...]
    unique: bool = False
    sparse: bool = False
    name: str = ""


@dataclass(frozen=True)
class EntityDescriptor:
    source_group_path: str
    name: str
    plural_name: str
    storage_collection_name: str
    fields: Tuple[FieldDescriptor, ...] = ()
    indexes: Tuple[IndexDescriptor, ...] = ()
    source_path: str = field(default="", compare=False)

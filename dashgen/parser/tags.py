"""Decoder for struct field tags and validation rule strings.

A tag is a flat sequence of ``key:"value"`` pairs separated by whitespace::

    json:"email" bson:"email" validate:"required,email" index:"unique"

Only ``json``, ``bson``, ``validate`` and ``index`` are read; any other key is
ignored so newer tag vocabularies do not break extraction.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


TAG_PAIR_RE = re.compile(r'([A-Za-z_][A-Za-z0-9_.-]*):"((?:[^"\\]|\\.)*)"')
BOUND_RULE_RE = re.compile(r'^(min|max)=(-?\d+)$')

KEYWORD_RULES = {"required", "email"}


@dataclass(frozen=True)
class TagAttributes:
    serialization_name: str = ""
    storage_name: str = ""
    validation_rule: str = ""
    index_directive: Optional[str] = None


@dataclass(frozen=True)
class ValidationRule:
    """One comma-separated sub-rule of a ``validate`` tag.

    ``kind`` is ``required``, ``email``, ``min``, ``max`` or ``unknown``;
    ``raw`` always keeps the sub-rule exactly as written.
    """
    kind: str
    raw: str
    value: Optional[int] = None

    @property
    def recognized(self) -> bool:
        return self.kind != "unknown"


def _tag_name(value: str) -> str:
    """Strip options such as ``,omitempty`` from a json/bson tag value."""
    return value.split(",", 1)[0].strip()


def parse_struct_tag(raw: Optional[str]) -> TagAttributes:
    """Decode a raw tag string (without its surrounding quotes)."""
    if not raw:
        return TagAttributes()

    values = {}
    for key, value in TAG_PAIR_RE.findall(raw):
        # The first occurrence of a key wins, as with reflect.StructTag.Get
        values.setdefault(key, value.replace('\\"', '"'))

    index = values.get("index")
    return TagAttributes(
        serialization_name=_tag_name(values.get("json", "")),
        storage_name=_tag_name(values.get("bson", "")),
        validation_rule=values.get("validate", ""),
        index_directive=index if index else None,
    )


@lru_cache(maxsize=256)
def decode_validation_rules(raw: str) -> Tuple[ValidationRule, ...]:
    rules = []
    for part in (raw or "").split(","):
        rule = part.strip()
        if not rule:
            continue
        if rule in KEYWORD_RULES:
            rules.append(ValidationRule(kind=rule, raw=rule))
            continue
        match = BOUND_RULE_RE.match(rule)
        if match:
            rules.append(ValidationRule(kind=match.group(1), raw=rule, value=int(match.group(2))))
        else:
            rules.append(ValidationRule(kind="unknown", raw=rule))
    return tuple(rules)

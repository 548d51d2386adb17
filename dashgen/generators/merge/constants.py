"""Reconciles the shared constants file with a batch of entities.

Phase 1 collects one ``ConstantEntry`` per entity. Phase 2 (``patch_constants``)
is a pure text transform: missing entries go just before the closing ``)`` of
the first ``const (`` block and every other line is kept byte for byte.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from dashgen.core.workflow import FileAction, FileRecord
from dashgen.generators.crud_gen.render import render_constant_entry, render_constants_file
from dashgen.generators.crud_gen.utils import constant_name, constant_value
from dashgen.generators.crud_gen.writer import atomic_write, log_record, read_text
from dashgen.parser.types import EntityDescriptor

log = logging.getLogger(__name__)

CONST_OPEN_RE = re.compile(r"^[ \t]*const[ \t]*\([ \t]*(//.*)?$")
CONST_CLOSE_RE = re.compile(r"^[ \t]*\)")


@dataclass(frozen=True)
class ConstantEntry:
    name: str
    value: str

    @classmethod
    def for_entity(cls, entity: EntityDescriptor) -> "ConstantEntry":
        return cls(constant_name(entity.name), constant_value(entity.name))


def collect_entries(entities: Iterable[EntityDescriptor]) -> List[ConstantEntry]:
    """One entry per entity name, first occurrence wins."""
    entries: List[ConstantEntry] = []
    seen = set()
    for entity in entities:
        entry = ConstantEntry.for_entity(entity)
        if entry.name not in seen:
            seen.add(entry.name)
            entries.append(entry)
    return entries


def has_constant(text: str, name: str) -> bool:
    """Line-anchored, whole-identifier match: UserID never matches SuperUserID."""
    pattern = rf"^[ \t]*(?:const[ \t]+)?{re.escape(name)}(?![A-Za-z0-9_])"
    return re.search(pattern, text, re.MULTILINE) is not None


def _find_const_block(lines: Sequence[str]) -> Optional[int]:
    """Index of the line closing the first ``const (`` block."""
    for i, line in enumerate(lines):
        if CONST_OPEN_RE.match(line.rstrip("\r\n")):
            for j in range(i + 1, len(lines)):
                if CONST_CLOSE_RE.match(lines[j]):
                    return j
            return None
    return None


def patch_constants(text: Optional[str], entries: Sequence[ConstantEntry], package: str = "constants") -> str:
    """Return ``text`` with every missing entry added.

    An absent or blank file yields a fresh file holding all entries. A file
    without a const block gets one appended. When nothing is missing the input
    is returned unchanged.
    """
    if text is None or not text.strip():
        return render_constants_file(entries, package)

    missing = [e for e in entries if not has_constant(text, e.name)]
    if not missing:
        return text

    newline = "\r\n" if "\r\n" in text else "\n"
    added = [render_constant_entry(e.name, e.value) + newline for e in missing]

    lines = text.splitlines(keepends=True)
    close = _find_const_block(lines)
    if close is None:
        prefix = text if text.endswith(("\n", "\r\n")) else text + newline
        return prefix + newline + "const (" + newline + "".join(added) + ")" + newline

    return "".join(lines[:close] + added + lines[close:])


class ConstantsPatcher:
    """Owns the constants file for one run."""

    def __init__(self, path: Union[str, Path], package: str = "constants", dry_run: bool = False):
        self.path = Path(path)
        self.package = package
        self.dry_run = dry_run

    def reconcile(self, entities: Iterable[EntityDescriptor]) -> FileRecord:
        entries = collect_entries(entities)
        original = read_text(self.path)
        updated = patch_constants(original, entries, self.package)

        if original is None:
            action = FileAction.CREATE
        elif updated == original:
            action = FileAction.UNCHANGED
        else:
            action = FileAction.PATCH

        added = [e.name for e in entries if original is None or not has_constant(original, e.name)]
        detail = f"added {', '.join(added)}" if added else ""
        if action != FileAction.UNCHANGED and not self.dry_run:
            atomic_write(self.path, updated)
        return log_record(FileRecord(action, str(self.path), detail), self.dry_run)


def ensure_constant(path: Union[str, Path], entity: EntityDescriptor, package: str = "constants", dry_run: bool = False) -> FileRecord:
    """Single-entity form of the reconcile; a second call is a no-op."""
    return ConstantsPatcher(path, package, dry_run).reconcile([entity])

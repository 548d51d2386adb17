"""Reconciles the shared aggregator (main.go) with a batch of entities.

The aggregator carries three anchor comments, each on its own line::

    // dashgen:imports   end of the import list
    // dashgen:init      end of model initialisation
    // dashgen:routes    end of route registration

Registrations are inserted immediately before their anchor, with the anchor's
indentation, so later runs find the anchors where they were left.
"""
import logging
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Set, Tuple, Union

from dashgen.core.workflow import FileAction, FileRecord
from dashgen.generators.crud_gen import utils
from dashgen.generators.crud_gen.render import TemplateRenderer
from dashgen.generators.crud_gen.writer import atomic_write, log_record, read_text
from dashgen.parser.types import EntityDescriptor

log = logging.getLogger(__name__)

SLOTS = ("imports", "init", "routes")
ANCHORS = {slot: f"// dashgen:{slot}" for slot in SLOTS}


def key_line(fragment: str) -> str:
    """First line of a fragment that is neither blank nor a comment."""
    for line in fragment.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("//"):
            return stripped
    return fragment.strip()


@dataclass(frozen=True)
class EntityRegistration:
    """The three fragments that register one entity in the aggregator."""
    entity: str
    import_line: str
    init_call: str
    routes: str

    def fragment(self, slot: str) -> str:
        return {"imports": self.import_line, "init": self.init_call, "routes": self.routes}[slot]


def build_registrations(renderer: TemplateRenderer, entities: Iterable[EntityDescriptor]) -> List[EntityRegistration]:
    entities = list(entities)
    primary = utils.primary_entities(entities)
    registrations = []
    for entity in entities:
        fragments = renderer.render_route_fragments(entity, (entity.source_group_path, entity.name) in primary)
        registrations.append(EntityRegistration(entity=entity.name, **fragments))
    return registrations


def _reindent(fragment: str, indent: str, newline: str) -> str:
    lines = textwrap.dedent(fragment).splitlines()
    return "".join((indent + line if line.strip() else "") + newline for line in lines)


@dataclass
class AggregatorDocument:
    """An aggregator file split at its anchors.

    ``sections[i]`` is the text before ``anchors[i]``; the final section is
    the text after the last anchor.
    """
    sections: List[str]
    anchors: List[Tuple[str, str]]  # (slot, anchor line as written)
    _lines: Set[str] = field(default_factory=set, repr=False)

    @classmethod
    def parse(cls, text: str) -> "AggregatorDocument":
        sections: List[str] = []
        anchors: List[Tuple[str, str]] = []
        current: List[str] = []
        by_comment = {comment: slot for slot, comment in ANCHORS.items()}
        for line in text.splitlines(keepends=True):
            slot = by_comment.get(line.strip())
            if slot is not None and slot not in {s for s, _ in anchors}:
                sections.append("".join(current))
                anchors.append((slot, line))
                current = []
            else:
                current.append(line)
        sections.append("".join(current))
        lines = {line.strip() for line in text.splitlines()}
        return cls(sections=sections, anchors=anchors, _lines=lines)

    @property
    def slots(self) -> List[str]:
        return [slot for slot, _ in self.anchors]

    def contains(self, fragment: str) -> bool:
        return key_line(fragment) in self._lines

    def insert(self, slot: str, fragment: str) -> None:
        """Place a fragment directly above the anchor of ``slot``."""
        for i, (name, anchor) in enumerate(self.anchors):
            if name != slot:
                continue
            indent = anchor[: len(anchor) - len(anchor.lstrip())]
            newline = "\r\n" if anchor.endswith("\r\n") else "\n"
            self.sections[i] += _reindent(fragment, indent, newline)
            self._lines.update(line.strip() for line in fragment.splitlines())
            return
        raise KeyError(slot)

    def render(self) -> str:
        parts = []
        for section, (_, anchor) in zip(self.sections, self.anchors):
            parts.append(section)
            parts.append(anchor)
        parts.append(self.sections[-1])
        return "".join(parts)


class AggregatorPatcher:
    """Owns the aggregator file for one run."""

    def __init__(self, path: Union[str, Path], renderer: TemplateRenderer, dry_run: bool = False):
        self.path = Path(path)
        self.renderer = renderer
        self.dry_run = dry_run

    def render_fresh(self, registrations: Iterable[EntityRegistration]) -> str:
        """A new aggregator holding every registration once, anchors included."""
        seen: Set[Tuple[str, str]] = set()
        picked: Dict[str, List[str]] = {slot: [] for slot in SLOTS}
        for registration in registrations:
            for slot in SLOTS:
                fragment = registration.fragment(slot)
                key = key_line(fragment)
                if (slot, key) not in seen:
                    seen.add((slot, key))
                    picked[slot].append(fragment)
        return self.renderer.render_aggregator(picked["imports"], picked["init"], picked["routes"], ANCHORS)

    def patch(self, text: str, registrations: Iterable[EntityRegistration]) -> Tuple[str, List[str]]:
        """Insert every absent fragment; returns the new text and the entities touched."""
        document = AggregatorDocument.parse(text)
        for slot in SLOTS:
            if slot not in document.slots:
                log.warning("%s: anchor '%s' not found, skipping %s registration", self.path, ANCHORS[slot], slot)

        # Phase 1: queue what is missing, in extraction order
        queued: List[Tuple[str, str, str]] = []
        pending: Set[Tuple[str, str]] = set()
        for registration in registrations:
            for slot in document.slots:
                fragment = registration.fragment(slot)
                key = key_line(fragment)
                if document.contains(fragment) or (slot, key) in pending:
                    continue
                pending.add((slot, key))
                queued.append((slot, registration.entity, fragment))

        # Phase 2: apply and render once
        touched: List[str] = []
        for slot, entity, fragment in queued:
            document.insert(slot, fragment)
            if entity not in touched:
                touched.append(entity)
        return (document.render() if queued else text), touched

    def reconcile(self, entities: Iterable[EntityDescriptor]) -> FileRecord:
        registrations = build_registrations(self.renderer, entities)
        original = read_text(self.path)

        if original is None:
            updated = self.render_fresh(registrations)
            touched = list(dict.fromkeys(r.entity for r in registrations))
            action = FileAction.CREATE
        else:
            updated, touched = self.patch(original, registrations)
            action = FileAction.PATCH if updated != original else FileAction.UNCHANGED

        detail = f"registered {', '.join(touched)}" if touched and action != FileAction.UNCHANGED else ""
        if action != FileAction.UNCHANGED and not self.dry_run:
            atomic_write(self.path, updated)
        return log_record(FileRecord(action, str(self.path), detail), self.dry_run)

"""Orchestrator for CRUD code generation."""
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from dashgen.core.config import Settings
from dashgen.core.workflow import RunReport
from dashgen.generators.crud_gen.render import TemplateRenderer
from dashgen.generators.crud_gen.types import GeneratedFile
from dashgen.generators.crud_gen.utils import (
    check_target_collisions,
    constants_package,
    entity_targets,
    primary_entities,
)
from dashgen.generators.crud_gen.writer import IdempotentWriter
from dashgen.generators.merge.aggregator import AggregatorPatcher
from dashgen.generators.merge.constants import ConstantsPatcher
from dashgen.parser import load_entities
from dashgen.parser.discovery import discover_definition_files, resolve_model_file
from dashgen.parser.types import EntityDescriptor

log = logging.getLogger(__name__)


def collect_entities(settings: Settings) -> List[EntityDescriptor]:
    """Discover definition files (or take the single --model file) and extract entities."""
    root = Path(settings.project_root)
    if settings.model_file:
        paths = resolve_model_file(settings.model_file)
    else:
        paths = discover_definition_files(root, settings.source_patterns)
    return load_entities(paths, root)


def render_entity_files(renderer: TemplateRenderer, entity: EntityDescriptor, primary: bool = True) -> List[GeneratedFile]:
    """Render the per-entity artifacts without touching the file system."""
    return [
        GeneratedFile(
            path=target.destination_path,
            content=renderer.render(target.kind, entity, primary),
            kind=target.kind,
        )
        for target in entity_targets(entity, primary)
    ]


def generate(settings: Settings, entities: Optional[Sequence[EntityDescriptor]] = None) -> RunReport:
    """
    Generate CRUD artifacts for every entity and reconcile the shared files.

    Args:
        settings: Run configuration
        entities: Pre-extracted entities; discovered from ``settings`` when omitted

    Returns:
        RunReport with one FileRecord per committed file

    Any error aborts the run; files already committed stay in place.
    """
    if entities is None:
        entities = collect_entities(settings)
    entities = list(entities)

    root = Path(settings.project_root)
    report = RunReport(entities=len(entities), dry_run=settings.dry_run)

    log.info("Total entities to generate: %d", len(entities))
    for i, entity in enumerate(entities, 1):
        log.info(
            "Entity %d: %s (pkg: %s, db: %s)",
            i, entity.name, entity.source_group_path, entity.storage_collection_name,
            extra={"entity": entity.name},
        )

    if not entities:
        log.warning("No @entity declarations found, nothing to generate")
        log.info(report.summary())
        return report

    renderer = TemplateRenderer(settings)
    writer = IdempotentWriter(force=settings.force, dry_run=settings.dry_run)
    primary = primary_entities(entities)
    check_target_collisions(entities, primary)

    for entity in entities:
        is_primary = (entity.source_group_path, entity.name) in primary
        for generated in render_entity_files(renderer, entity, is_primary):
            report.add(writer.write(root / generated.path, generated.content))

    constants = ConstantsPatcher(
        root / settings.constants_file,
        package=constants_package(settings.constants_file),
        dry_run=settings.dry_run,
    )
    report.add(constants.reconcile(entities))

    aggregator = AggregatorPatcher(root / settings.aggregator_file, renderer, dry_run=settings.dry_run)
    report.add(aggregator.reconcile(entities))

    log.info(report.summary())
    return report

"""Utility functions for CRUD generation: package names and output paths."""
import re
from pathlib import PurePosixPath
from typing import Dict, List, Sequence, Set, Tuple

from dashgen.core.errors import TargetCollisionError
from dashgen.generators.crud_gen.types import ArtifactKind, GenerationTarget
from dashgen.parser.naming import to_snake_case
from dashgen.parser.types import EntityDescriptor


def package_name(group_path: str) -> str:
    """Go package name of a group path: its last segment, lowercased."""
    segment = PurePosixPath(group_path).name.lower()
    return re.sub(r"[^a-z0-9_]", "", segment) or "model"


def constants_import(constants_file: str) -> str:
    """Import path of the constants package, relative to the module."""
    parent = PurePosixPath(constants_file).parent.as_posix()
    return "" if parent == "." else parent


def constants_package(constants_file: str) -> str:
    return package_name(constants_import(constants_file) or "constants")


def primary_entities(entities: Sequence[EntityDescriptor]) -> Set[Tuple[str, str]]:
    """Pick one entity per package to own the unqualified names.

    The entity named like its package wins; otherwise the first entity of the
    package in extraction order. Returns (group_path, name) pairs.
    """
    by_group: Dict[str, List[EntityDescriptor]] = {}
    for entity in entities:
        by_group.setdefault(entity.source_group_path, []).append(entity)

    primary = set()
    for group, members in by_group.items():
        pkg = package_name(group)
        chosen = next((e for e in members if e.name.lower() == pkg), members[0])
        primary.add((group, chosen.name))
    return primary


def entity_targets(entity: EntityDescriptor, primary: bool = True) -> List[GenerationTarget]:
    """Destination of every per-entity artifact."""
    group = entity.source_group_path
    lower = entity.name.lower()
    if primary:
        init_path = f"{group}/init.go"
        repository_path = f"{group}/repository.go"
    else:
        snake = to_snake_case(entity.name)
        init_path = f"{group}/{snake}_init.go"
        repository_path = f"{group}/{snake}_repository.go"

    return [
        GenerationTarget(init_path, ArtifactKind.MODEL_INIT),
        GenerationTarget(repository_path, ArtifactKind.REPOSITORY),
        GenerationTarget(f"internal/action/{lower}.go", ArtifactKind.ACTION),
        GenerationTarget(f"internal/api/{lower}.go", ArtifactKind.API),
        GenerationTarget(f"client/{lower}.go", ArtifactKind.CLIENT),
    ]


def check_target_collisions(entities: Sequence[EntityDescriptor], primary: Set[Tuple[str, str]]) -> None:
    """Fail before any write when two entities map to the same destination file."""
    owners: Dict[str, Tuple[int, str]] = {}
    for i, entity in enumerate(entities):
        label = f"{entity.name} ({entity.source_group_path})"
        is_primary = (entity.source_group_path, entity.name) in primary
        for target in entity_targets(entity, is_primary):
            owner, owner_label = owners.setdefault(target.destination_path, (i, label))
            if owner != i:
                raise TargetCollisionError(target.destination_path, owner_label, label)


def entity_identifiers(entity: EntityDescriptor, primary: bool = True) -> Dict[str, str]:
    """Function and type names the model package exports for an entity."""
    if primary:
        return {
            "init_func": "Init",
            "repo_getter": "GetRepository",
            "repo_type": "mongoRepository",
            "index_func": "createIndexes",
        }
    return {
        "init_func": f"Init{entity.name}",
        "repo_getter": f"Get{entity.name}Repository",
        "repo_type": f"mongo{entity.name}Repository",
        "index_func": f"create{entity.name}Indexes",
    }


def constant_name(entity_name: str) -> str:
    return f"Param{entity_name}ID"


def constant_value(entity_name: str) -> str:
    return f"{entity_name.lower()}_id"


def route_path(entity: EntityDescriptor) -> str:
    return f"/v1/{entity.name.lower()}"


def list_route_path(entity: EntityDescriptor) -> str:
    return f"/v1/{entity.plural_name.lower()}"

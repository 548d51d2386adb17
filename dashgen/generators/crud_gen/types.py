"""Dataclasses for CRUD artifact generation."""
from dataclasses import dataclass
from enum import Enum


class ArtifactKind(str, Enum):
    MODEL_INIT = "model_init"
    REPOSITORY = "repository"
    ACTION = "action"
    API = "api"
    CLIENT = "client"
    ROUTES = "routes"
    CONSTANTS = "constants"


# Artifacts rendered once per entity, in commit order
PER_ENTITY_KINDS = (
    ArtifactKind.MODEL_INIT,
    ArtifactKind.REPOSITORY,
    ArtifactKind.ACTION,
    ArtifactKind.API,
    ArtifactKind.CLIENT,
)


@dataclass(frozen=True)
class GenerationTarget:
    """Where one artifact of one entity goes."""
    destination_path: str  # Relative to the project root, POSIX form
    kind: ArtifactKind


@dataclass
class GeneratedFile:
    """Represents a rendered file that has not been committed yet."""
    path: str  # Relative path from project root
    content: str  # File contents
    kind: ArtifactKind

"""Template rendering for entity artifacts and route/constant fragments."""
import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, Sequence

from jinja2 import DictLoader, Environment, StrictUndefined

from dashgen.core.config import Settings
from dashgen.generators.crud_gen import utils
from dashgen.generators.crud_gen.render_entity import (
    email_helper_name,
    generate_compound_indexes,
    generate_field_indexes,
    generate_validation,
    has_indexes,
    has_required_fields,
    index_imports,
    uses_rule,
)
from dashgen.generators.crud_gen.templates import TEMPLATES
from dashgen.generators.crud_gen.types import ArtifactKind
from dashgen.parser.naming import lower_first, to_snake_case
from dashgen.parser.types import EntityDescriptor

log = logging.getLogger(__name__)

# Template names behind the fragment kinds
FRAGMENT_TEMPLATES = {
    ArtifactKind.ROUTES: ("routes/import", "routes/init", "routes/handlers"),
    ArtifactKind.CONSTANTS: ("constants/entry", "constants/file"),
}


def create_jinja_env() -> Environment:
    """Create Jinja2 environment with the Go templates, filters and globals."""
    env = Environment(
        loader=DictLoader(TEMPLATES),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )

    # Name filters
    env.filters["lower"] = str.lower
    env.filters["lower_first"] = lower_first
    env.filters["snake_case"] = to_snake_case

    # Field and index helpers
    env.globals["has_required_fields"] = has_required_fields
    env.globals["uses_rule"] = uses_rule
    env.globals["generate_validation"] = generate_validation
    env.globals["generate_field_indexes"] = generate_field_indexes
    env.globals["generate_compound_indexes"] = generate_compound_indexes
    env.globals["has_indexes"] = has_indexes
    env.globals["index_imports"] = index_imports
    env.globals["email_helper_name"] = email_helper_name

    return env


@lru_cache(maxsize=None)
def default_env() -> Environment:
    return create_jinja_env()


def render_constant_entry(name: str, value: str) -> str:
    return default_env().get_template("constants/entry").render(name=name, value=value).rstrip("\n")


def render_constants_file(entries: Iterable[Any], package: str = "constants") -> str:
    return default_env().get_template("constants/file").render(package=package, entries=list(entries))


def build_entity_context(entity: EntityDescriptor, settings: Settings, primary: bool = True) -> Dict[str, Any]:
    """Everything a template may reference for one entity."""
    context = {
        "module": settings.module_path,
        "group_path": entity.source_group_path,
        "package": utils.package_name(entity.source_group_path),
        "entity": entity.name,
        "entity_lower": entity.name.lower(),
        "entity_snake": to_snake_case(entity.name),
        "entity_plural": entity.plural_name,
        "route_path": utils.route_path(entity),
        "list_route_path": utils.list_route_path(entity),
        "db_name": entity.storage_collection_name,
        "deleted_db_name": f"{entity.storage_collection_name}_deleted",
        "fields": list(entity.fields),
        "indexes": list(entity.indexes),
        "repo_interface": f"{entity.name}Repository",
        "constant_name": utils.constant_name(entity.name),
        "constant_value": utils.constant_value(entity.name),
        "constants_import": utils.constants_import(settings.constants_file),
        "constants_package": utils.constants_package(settings.constants_file),
    }
    context.update(utils.entity_identifiers(entity, primary))
    return context


class TemplateRenderer:
    """Renders the fixed artifact set; pure, with no file system access."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.env = create_jinja_env()

    def render_template(self, name: str, **context: Any) -> str:
        return self.env.get_template(name).render(**context)

    def render(self, kind: ArtifactKind, entity: EntityDescriptor, primary: bool = True) -> str:
        """Render one per-entity artifact."""
        if kind in FRAGMENT_TEMPLATES:
            raise ValueError(f"{kind.value} is rendered as fragments, not as a file")
        log.debug("Rendering %s", kind.value, extra={"entity": entity.name})
        return self.render_template(kind.value, **build_entity_context(entity, self.settings, primary))

    def render_route_fragments(self, entity: EntityDescriptor, primary: bool = True) -> Dict[str, str]:
        """The import line, init call and route block registering one entity."""
        context = build_entity_context(entity, self.settings, primary)
        return {
            "import_line": self.render_template("routes/import", **context).rstrip("\n"),
            "init_call": self.render_template("routes/init", **context).rstrip("\n"),
            "routes": self.render_template("routes/handlers", **context).rstrip("\n"),
        }

    def render_constants_file(self, entries: Iterable[Any]) -> str:
        return render_constants_file(entries, utils.constants_package(self.settings.constants_file))

    def render_aggregator(
        self,
        imports: Sequence[str],
        inits: Sequence[str],
        routes: Sequence[str],
        markers: Dict[str, str],
    ) -> str:
        """Render a fresh aggregator holding the given fragments and the anchors."""
        return self.render_template(
            "main",
            module=self.settings.module_path,
            imports=list(imports),
            inits=list(inits),
            routes=list(routes),
            markers=markers,
        )

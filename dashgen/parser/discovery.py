"""Definition file discovery under a project root."""
import logging
from pathlib import Path
from typing import Iterable, List, Union

from dashgen.core.errors import DiscoveryError

log = logging.getLogger(__name__)


def discover_definition_files(project_root: Union[str, Path], patterns: Iterable[str]) -> List[Path]:
    """Glob every pattern under the project root.

    The result is de-duplicated and sorted by POSIX path; that order is the
    extraction order and therefore the registration order in the aggregator.
    """
    root = Path(project_root)
    patterns = list(patterns)
    found = {}
    for pattern in patterns:
        for path in root.glob(pattern):
            if path.is_file():
                found[path.as_posix()] = path

    if not found:
        searched = ", ".join(str(root / p) for p in patterns)
        raise DiscoveryError(f"no definition files found under {searched}")

    paths = [found[key] for key in sorted(found)]
    log.debug("Discovered %d definition files", len(paths))
    return paths


def resolve_model_file(model_file: Union[str, Path]) -> List[Path]:
    path = Path(model_file)
    if not path.is_file():
        raise DiscoveryError(f"definition file not found: {path}")
    return [path]

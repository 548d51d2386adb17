"""File writer for generated artifacts.

Every commit goes through ``IdempotentWriter``: the create/skip/overwrite
decision is taken before any I/O, so a dry run reports exactly what a real run
would do.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from dashgen.core.errors import FileSystemError
from dashgen.core.workflow import FileAction, FileRecord

log = logging.getLogger(__name__)

_MESSAGES = {
    FileAction.CREATE: "created",
    FileAction.SKIP: "skipped (exists)",
    FileAction.OVERWRITE: "overwritten",
    FileAction.PATCH: "patched",
    FileAction.UNCHANGED: "unchanged",
}


def describe(record: FileRecord, dry_run: bool = False) -> str:
    message = _MESSAGES[record.action]
    if dry_run and record.action in (FileAction.CREATE, FileAction.OVERWRITE, FileAction.PATCH):
        message = f"would be {message}"
    text = f"{message}: {record.path}"
    if record.detail:
        text += f" ({record.detail})"
    return text


def log_record(record: FileRecord, dry_run: bool = False) -> FileRecord:
    log.info(describe(record, dry_run), extra={"action": record.action.value})
    return record


def read_text(path: Union[str, Path]) -> Optional[str]:
    """Contents of a file, or None when it does not exist."""
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except UnicodeDecodeError as e:
        raise FileSystemError(str(path), OSError(f"not valid UTF-8: {e.reason}")) from e
    except OSError as e:
        raise FileSystemError(str(path), e) from e


def atomic_write(path: Union[str, Path], content: str) -> None:
    """Write through a temporary sibling file so the target is never partial."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise FileSystemError(str(path), e) from e


class IdempotentWriter:
    """Commits rendered text: CREATE when absent, else SKIP unless overwriting."""

    def __init__(self, force: bool = False, dry_run: bool = False):
        self.force = force
        self.dry_run = dry_run

    def decide(self, path: Union[str, Path], overwrite: Optional[bool] = None) -> FileAction:
        if overwrite is None:
            overwrite = self.force
        if not Path(path).exists():
            return FileAction.CREATE
        return FileAction.OVERWRITE if overwrite else FileAction.SKIP

    def write(self, path: Union[str, Path], text: str, overwrite: Optional[bool] = None) -> FileRecord:
        action = self.decide(path, overwrite)
        if action != FileAction.SKIP and not self.dry_run:
            atomic_write(path, text)
        return log_record(FileRecord(action, str(path)), self.dry_run)

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


class FileAction(str, Enum):
    CREATE = "CREATE"
    SKIP = "SKIP"
    OVERWRITE = "OVERWRITE"
    PATCH = "PATCH"
    UNCHANGED = "UNCHANGED"


@dataclass(frozen=True)
class FileRecord:
    action: FileAction
    path: str
    detail: str = ""


@dataclass
class RunReport:
    entities: int = 0
    records: List[FileRecord] = field(default_factory=list)
    dry_run: bool = False

    def add(self, record: FileRecord) -> FileRecord:
        self.records.append(record)
        return record

    def counts(self) -> Dict[FileAction, int]:
        counts = {action: 0 for action in FileAction}
        for record in self.records:
            counts[record.action] += 1
        return counts

    def summary(self) -> str:
        counts = self.counts()
        prefix = "Dry run finished" if self.dry_run else "Generation finished"
        return (
            f"{prefix}: {self.entities} entities, "
            f"{counts[FileAction.CREATE]} created, "
            f"{counts[FileAction.OVERWRITE]} overwritten, "
            f"{counts[FileAction.PATCH]} patched, "
            f"{counts[FileAction.SKIP]} skipped, "
            f"{counts[FileAction.UNCHANGED]} unchanged"
        )

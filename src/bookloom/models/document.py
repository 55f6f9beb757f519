"""Document model: the shell plus every section persisted so far."""

from __future__ import annotations

from pydantic import BaseModel, Field

from bookloom.models.section import SectionRecord, SectionStatus
from bookloom.models.shell import DocumentShell


class Document(BaseModel):
    """A document as visible to readers, gaps included."""

    document_id: str
    shell: DocumentShell | None = None
    sections: dict[int, SectionRecord] = Field(default_factory=dict)

    def persisted_indices(self) -> list[int]:
        return sorted(i for i, s in self.sections.items() if s.status is SectionStatus.PERSISTED)

    def failed_indices(self) -> list[int]:
        return sorted(i for i, s in self.sections.items() if s.status is SectionStatus.FAILED)

    def is_complete(self) -> bool:
        """True once every outline entry beyond the first reached a terminal state."""

        if self.shell is None:
            return False
        expected = [i for i in self.shell.section_indices() if i != 1]
        return all(i in self.sections and self.sections[i].status.terminal for i in expected)

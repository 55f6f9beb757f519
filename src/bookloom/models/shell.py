"""Document shell models.

The shell is the synchronously returned skeleton of a document. Every field
always holds a value; the extractor synthesizes defaults for anything the
backend did not deliver.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class OutlineEntry(BaseModel):
    """One entry of the table of contents."""

    index: int = Field(ge=1)
    title: str
    image_hint: str = ""


class AuxiliaryResource(BaseModel):
    """A supporting resource suggested alongside the document (e.g. a local venue)."""

    name: str
    type: str = ""
    description: str = ""
    address: str = ""


class DocumentShell(BaseModel):
    """Title, outline and first section of a document."""

    title: str
    display_title: str
    subtitle: str
    table_of_contents: list[OutlineEntry]
    first_section_content: str
    auxiliary_resources: list[AuxiliaryResource] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def section_indices(self) -> list[int]:
        return [entry.index for entry in self.table_of_contents]

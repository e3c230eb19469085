"""Section names and extraction results for the generated feedback document."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class SectionName(str, Enum):
    """Heading texts the generation prompt promises to emit, in document order."""

    SUMMARY = "Overall Summary"
    BREAKDOWN = "Section-by-Section Breakdown"
    REFINED_COPY = "Refined Resume Copy"
    COVER_LETTER = "Cover Letter Draft"


PLACEHOLDERS: dict[str, str] = {
    "summary": "Summary not generated.",
    "details": "Detailed breakdown not generated.",
    "refined_copy": "Refined copy not generated.",
    "cover_letter": "Cover letter not generated.",
}


class SectionSnapshot(BaseModel):
    """The four wizard sections derived from one pass over the document."""

    summary: str = ""
    details: str = ""
    refined_copy: str = ""
    cover_letter: str = ""

    model_config = {"frozen": True}

    def is_empty(self) -> bool:
        return not (self.summary or self.details or self.refined_copy or self.cover_letter)

    def merged_over(self, previous: SectionSnapshot) -> SectionSnapshot:
        """Return this snapshot with empty fields taken from ``previous``."""
        return SectionSnapshot(
            summary=self.summary or previous.summary,
            details=self.details or previous.details,
            refined_copy=self.refined_copy or previous.refined_copy,
            cover_letter=self.cover_letter or previous.cover_letter,
        )

    def with_placeholders(self) -> SectionSnapshot:
        """Fill every empty field with its user-visible placeholder."""
        return SectionSnapshot(
            **{
                name: getattr(self, name) or placeholder
                for name, placeholder in PLACEHOLDERS.items()
            }
        )

"""Progressive section extraction over a streamed feedback document."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable

from resume_optimizer.models.sections import SectionSnapshot
from resume_optimizer.parsers.section_parser import parse_sections

logger = logging.getLogger(__name__)

# Summary must be longer than this before the wizard leaves the loading view.
SUMMARY_READY_LENGTH = 50
# Final sections shorter than this are reported as probable extraction misses.
SHORT_SECTION_WARNING = 50


class StreamingReconciler:
    """Re-runs the extraction plan over the whole buffer after every chunk.

    Published slots only move forward: a pass that yields an empty section
    keeps the previously published value for that slot.
    """

    def __init__(
        self,
        on_update: Callable[[SectionSnapshot], None] | None = None,
        on_summary_ready: Callable[[], None] | None = None,
    ):
        self.on_update = on_update
        self.on_summary_ready = on_summary_ready
        self._chunks: list[str] = []
        self._slots = SectionSnapshot()
        self.summary_activated = False
        self.chunk_count = 0

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    @property
    def slots(self) -> SectionSnapshot:
        return self._slots

    def feed(self, chunk: str) -> SectionSnapshot:
        """Append a chunk, recompute all sections and publish non-empty ones."""
        if not chunk:
            return self._slots
        self._chunks.append(chunk)
        self.chunk_count += 1

        extracted = parse_sections(self.text)
        self._slots = extracted.merged_over(self._slots)

        if not self.summary_activated and len(extracted.summary) > SUMMARY_READY_LENGTH:
            self.summary_activated = True
            logger.debug("Summary ready after %d chunks", self.chunk_count)
            if self.on_summary_ready:
                self.on_summary_ready()

        if self.on_update:
            self.on_update(self._slots)
        return self._slots

    async def consume(self, stream: AsyncIterator[str]) -> str:
        """Feed every chunk of ``stream`` and return the full document."""
        async for chunk in stream:
            self.feed(chunk)
        return self.text

    def finalize(self) -> SectionSnapshot:
        """Final pass over the complete document.

        Returns the extracted sections, which may still be empty; the
        published slots get placeholders for whatever is missing.
        """
        final = parse_sections(self.text).merged_over(self._slots)
        logger.debug(
            "Extraction: document=%d summary=%d details=%d refined_copy=%d cover_letter=%d",
            len(self.text),
            len(final.summary),
            len(final.details),
            len(final.refined_copy),
            len(final.cover_letter),
        )
        if len(final.refined_copy) < SHORT_SECTION_WARNING:
            logger.warning("Refined copy extraction failed or too short (%d chars)", len(final.refined_copy))
        if len(final.cover_letter) < SHORT_SECTION_WARNING:
            logger.warning("Cover letter extraction failed or too short (%d chars)", len(final.cover_letter))

        self._slots = final.with_placeholders()
        return final

# WORKFLOW: Split aggregated document text into bounded, overlapping, line-safe chunks.
# Used by: Extraction pipeline before structured code extraction
# Functions:
# 1. chunk_text() - Cut text at line/cell boundaries with an overlap tail
#
# Chunking flow: Full text -> Window of max size -> Cut after last "\n" or "|" past midpoint -> Next window
# Each chunk after the first starts with the tail of the previous chunk's raw slice, so a table
# row split at a boundary appears whole in at least one chunk. Duplicates are left to the deduplicator.

from dataclasses import dataclass
from typing import List

BREAK_CHARACTERS = ("\n", "|")


@dataclass(frozen=True)
class TextChunk:
    index: int
    start: int  # raw (non-overlap) start offset in the full text
    end: int
    overlap: int  # length of the prefixed tail
    text: str

    @property
    def window_start(self) -> int:
        return self.start - self.overlap

    @property
    def raw_text(self) -> str:
        return self.text[self.overlap:]


def chunk_text(text: str, max_chunk_size: int = 35000, overlap: int = 2000) -> List[TextChunk]:
    """
    Split text into chunks no longer than ``max_chunk_size``.

    Args:
        text: Aggregated document text
        max_chunk_size: Maximum chunk length, overlap included
        overlap: Maximum length of the tail repeated at the start of the next chunk

    Returns:
        Chunks in order; joining their raw_text reproduces ``text`` exactly
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
    if overlap < 0 or overlap >= max_chunk_size:
        raise ValueError(f"overlap must be in [0, {max_chunk_size}), got {overlap}")

    if len(text) <= max_chunk_size:
        return [TextChunk(index=0, start=0, end=len(text), overlap=0, text=text)]

    chunks: List[TextChunk] = []
    text_length = len(text)
    raw_start = 0
    tail = 0

    while raw_start < text_length:
        window_start = raw_start - tail
        end = min(window_start + max_chunk_size, text_length)

        if end < text_length:
            window = text[window_start:end]
            last_break = max(window.rfind(ch) for ch in BREAK_CHARACTERS)
            if last_break >= 0:
                break_point = window_start + last_break
                if break_point > window_start + max_chunk_size / 2 and break_point >= raw_start:
                    end = break_point + 1

        chunks.append(
            TextChunk(
                index=len(chunks),
                start=raw_start,
                end=end,
                overlap=tail,
                text=text[window_start:end],
            )
        )
        tail = min(overlap, end - raw_start)
        raw_start = end

    return chunks

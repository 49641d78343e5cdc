"""Chunk passive intervals into day-aligned blocks and merge equivalent runs."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Sequence

from .days import DayWindow
from .models import Interval, MergedBlock, TimeBlock
from .presence import PresenceOverlay

logger = logging.getLogger(__name__)

InactivePredicate = Callable[[str], bool]


def block_bounds(window: DayWindow, width_ms: int, index: int) -> tuple[int, int]:
    start = window.start + index * width_ms
    return start, min(start + width_ms, window.end)


def dominant_label(
    totals: dict[str, int], is_inactive_label: Optional[InactivePredicate] = None
) -> str:
    """Pick the label with the largest cumulative overlap.

    Inactive labels only win when nothing else is present. Ties go to the label
    seen first.
    """
    candidates = list(totals.items())
    if is_inactive_label is not None:
        meaningful = [item for item in candidates if not is_inactive_label(item[0])]
        if meaningful:
            candidates = meaningful
    best_label, best_ms = candidates[0]
    for label, ms in candidates[1:]:
        if ms > best_ms:
            best_label, best_ms = label, ms
    return best_label


def chunk_into_blocks(
    intervals: Iterable[Interval],
    window: DayWindow,
    width_ms: int,
    presence: Optional[PresenceOverlay] = None,
    is_inactive_label: Optional[InactivePredicate] = None,
) -> list[TimeBlock]:
    """Reference every interval from each block it overlaps.

    Blocks sit at ``window.start + k * width_ms``; the last one is cut at the
    end of the day. Empty blocks are omitted.
    """
    members_by_block: dict[int, list[Interval]] = {}
    for interval in sorted(intervals, key=lambda item: (item.start, item.sequence)):
        start = max(interval.start, window.start)
        end = min(interval.end, window.end)
        if end <= start:
            continue
        first = (start - window.start) // width_ms
        last = (end - 1 - window.start) // width_ms
        for index in range(first, last + 1):
            members_by_block.setdefault(index, []).append(interval)

    blocks: list[TimeBlock] = []
    for index in sorted(members_by_block):
        block_start, block_end = block_bounds(window, width_ms, index)
        members = members_by_block[index]
        totals: dict[str, int] = {}
        for member in members:
            overlap = member.overlap_ms(block_start, block_end)
            totals[member.classification] = totals.get(member.classification, 0) + overlap
        labels_inactive = is_inactive_label is not None and all(
            is_inactive_label(label) for label in totals
        )
        away = presence is not None and presence.is_inactive_only(block_start, block_end)
        blocks.append(
            TimeBlock(
                block_start=block_start,
                block_end=block_end,
                members=tuple(members),
                dominant=dominant_label(totals, is_inactive_label),
                totals=tuple(totals.items()),
                inactive_only=labels_inactive or away,
            )
        )
    logger.debug("Chunked %d blocks for %s", len(blocks), window.key)
    return blocks


def blocks_equivalent(previous: TimeBlock, block: TimeBlock) -> bool:
    """Adjacent, and either both inactive-only or both active with one dominant label."""
    if block.block_start != previous.block_end:
        return False
    if previous.inactive_only != block.inactive_only:
        return False
    return previous.inactive_only or previous.dominant == block.dominant


def _start_run(block: TimeBlock) -> MergedBlock:
    return MergedBlock(
        start=block.block_start,
        end=block.block_end,
        dominant=block.dominant,
        blocks=(block,),
        inactive_only=block.inactive_only,
    )


def extend_merged(merged: Sequence[MergedBlock], blocks: Iterable[TimeBlock]) -> list[MergedBlock]:
    """Continue a greedy left-to-right merge with more blocks."""
    result = list(merged)
    for block in blocks:
        if result and blocks_equivalent(result[-1].blocks[-1], block):
            current = result[-1]
            result[-1] = MergedBlock(
                start=current.start,
                end=block.block_end,
                dominant=current.dominant,
                blocks=current.blocks + (block,),
                inactive_only=current.inactive_only,
            )
        else:
            result.append(_start_run(block))
    return result


def merge_blocks(blocks: Iterable[TimeBlock]) -> list[MergedBlock]:
    return extend_merged([], blocks)

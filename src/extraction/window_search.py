"""Proximity search for a value near a label line."""

from collections.abc import Callable, Iterator

from .text_normalizer import NormalizedLine

# Maps a raw candidate string to an accepted value, or None to reject it.
Acceptor = Callable[[str], str | None]


def window_order(anchor: int, window: int, line_count: int) -> Iterator[int]:
    """Yield line indices to visit: the anchor, then outward by distance.

    At each distance the line above the anchor is visited before the line
    below it. Indices outside ``[0, line_count)`` are skipped.
    """
    if 0 <= anchor < line_count:
        yield anchor
    for distance in range(1, window + 1):
        for index in (anchor - distance, anchor + distance):
            if 0 <= index < line_count:
                yield index


def line_candidates(line: NormalizedLine) -> Iterator[str]:
    """Yield the after-colon text of a line, then each of its tokens."""
    tail = line.after_colon
    if tail is not None:
        yield tail
    yield from line.tokens


def find_nearby_value(
    lines: list[NormalizedLine],
    anchor: int,
    window: int,
    accept: Acceptor,
    skip: Callable[[int], bool] | None = None,
) -> tuple[str, int] | None:
    """Find the first acceptable value within ``window`` lines of an anchor.

    Args:
        lines: Normalized lines of the scanned text.
        anchor: Index of the line carrying the label.
        window: Maximum distance, in lines, from the anchor.
        accept: Returns the accepted value for a candidate, or ``None``.
        skip: Optional predicate on a line index; lines other than the
            anchor for which it returns True are not searched.

    Returns:
        Tuple of (value, line_index), or ``None`` if the window is exhausted.
    """
    for index in window_order(anchor, window, len(lines)):
        if index != anchor and skip is not None and skip(index):
            continue
        for candidate in line_candidates(lines[index]):
            value = accept(candidate)
            if value is not None:
                return value, index
    return None

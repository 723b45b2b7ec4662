"""
Reading Order Module
Linearizes recognized text lines with a recursive XY-cut
"""

from typing import Callable, List, Sequence, Tuple

from ...schemas import TextBlock

VERTICAL_RL = "vertical_rl"      # columns right to left, lines top to bottom
HORIZONTAL_LTR = "horizontal_ltr"  # columns left to right, lines top to bottom
DIRECTIONS = (VERTICAL_RL, HORIZONTAL_LTR)

_Item = Tuple[int, TextBlock]


def _split(items: Sequence[_Item], lo: Callable, hi: Callable) -> Tuple[List[List[_Item]], int]:
    """Split items at whitespace gaps of one projection.

    Returns the segments in ascending coordinate order and the widest gap.
    """
    ordered = sorted(items, key=lambda it: (lo(it[1]), hi(it[1]), it[0]))
    segments = [[ordered[0]]]
    reach = hi(ordered[0][1])
    widest = -1
    for item in ordered[1:]:
        start = lo(item[1])
        if start >= reach:
            widest = max(widest, start - reach)
            segments.append([item])
        else:
            segments[-1].append(item)
        reach = max(reach, hi(item[1]))
    return segments, widest


class ReadingOrderAssembler:
    """
    Assign reading order to recognized blocks

    At each level the blocks are projected on both axes and cut at the
    widest whitespace gap. Horizontal bands are read top to bottom; vertical
    bands right to left (vertical_rl) or left to right (horizontal_ltr).
    Blocks that cannot be separated are sorted by position, with the input
    index as the final tie-break so the result is deterministic.
    """

    def __init__(self, direction: str = VERTICAL_RL):
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown writing direction '{direction}'. Available: {', '.join(DIRECTIONS)}")
        self.direction = direction

    def process(self, blocks: Sequence[TextBlock]) -> List[TextBlock]:
        """
        Args:
            blocks: Recognized blocks in any order (empty texts included)

        Returns:
            The same blocks in reading order with reading_order = 1..n
        """
        ordered: List[TextBlock] = []
        self._assemble(list(enumerate(blocks)), ordered)
        return [block.with_order(i + 1) for i, block in enumerate(ordered)]

    def _assemble(self, items: List[_Item], out: List[TextBlock]) -> None:
        if len(items) <= 1:
            out.extend(block for _, block in items)
            return

        rows, row_gap = _split(items, lambda b: b.y, lambda b: b.y2)
        cols, col_gap = _split(items, lambda b: b.x, lambda b: b.x2)

        if len(rows) == 1 and len(cols) == 1:
            out.extend(block for _, block in sorted(items, key=self._fallback_key))
            return

        if len(cols) > 1 and (len(rows) == 1 or col_gap > row_gap):
            segments = cols[::-1] if self.direction == VERTICAL_RL else cols
        else:
            segments = rows

        for segment in segments:
            self._assemble(segment, out)

    def _fallback_key(self, item: _Item):
        index, block = item
        if self.direction == VERTICAL_RL:
            return (-block.center_x, block.y, index)
        return (block.y, block.x, index)

    def __repr__(self):
        return f"ReadingOrderAssembler(direction={self.direction})"

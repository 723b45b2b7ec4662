"""
Tests for XY-cut reading order.
"""

import pytest

from cascade_ocr.modules.reading_order import HORIZONTAL_LTR, VERTICAL_RL, ReadingOrderAssembler
from cascade_ocr.schemas import TextBlock


def _block(text, x, y, w, h):
    return TextBlock(x=x, y=y, width=w, height=h, text=text)


def _texts(blocks):
    return [b.text for b in blocks]


class TestReadingOrderAssembler:
    def test_unknown_direction(self):
        with pytest.raises(ValueError):
            ReadingOrderAssembler("bottom_up")

    def test_empty(self):
        assert ReadingOrderAssembler().process([]) == []

    def test_vertical_columns_right_to_left(self):
        blocks = [_block("left", 0, 0, 20, 300), _block("right", 100, 0, 20, 300)]
        assert _texts(ReadingOrderAssembler(VERTICAL_RL).process(blocks)) == ["right", "left"]

    def test_horizontal_columns_left_to_right(self):
        blocks = [_block("right", 200, 0, 100, 20), _block("left", 0, 0, 100, 20)]
        assert _texts(ReadingOrderAssembler(HORIZONTAL_LTR).process(blocks)) == ["left", "right"]

    def test_rows_top_to_bottom(self):
        blocks = [_block("second", 0, 100, 300, 20), _block("first", 0, 0, 300, 20)]
        for direction in (VERTICAL_RL, HORIZONTAL_LTR):
            assert _texts(ReadingOrderAssembler(direction).process(blocks)) == ["first", "second"]

    def test_nested_layout(self):
        # title band across the top, two vertical columns below it
        blocks = [
            _block("col-left", 0, 100, 20, 300),
            _block("title", 0, 0, 300, 40),
            _block("col-right", 200, 100, 20, 300),
        ]
        result = ReadingOrderAssembler(VERTICAL_RL).process(blocks)
        assert _texts(result) == ["title", "col-right", "col-left"]

    def test_assigns_one_based_order(self):
        blocks = [_block("b", 0, 100, 300, 20), _block("a", 0, 0, 300, 20), _block("c", 0, 200, 300, 20)]
        result = ReadingOrderAssembler().process(blocks)
        assert [b.reading_order for b in result] == [1, 2, 3]
        assert _texts(result) == ["a", "b", "c"]

    def test_overlapping_blocks_fall_back_to_position(self):
        blocks = [_block("left", 0, 0, 60, 100), _block("right", 40, 10, 60, 100)]
        assert _texts(ReadingOrderAssembler(VERTICAL_RL).process(blocks)) == ["right", "left"]
        assert _texts(ReadingOrderAssembler(HORIZONTAL_LTR).process(blocks)) == ["left", "right"]

    def test_keeps_empty_text_blocks(self):
        blocks = [_block("", 0, 0, 300, 20), _block("x", 0, 100, 300, 20)]
        assert len(ReadingOrderAssembler().process(blocks)) == 2

    def test_deterministic(self):
        blocks = [_block(str(i), (i % 3) * 100, (i // 3) * 50, 80, 30) for i in range(9)]
        assembler = ReadingOrderAssembler()
        assert _texts(assembler.process(blocks)) == _texts(assembler.process(list(reversed(blocks))))

    def test_geometry_and_text_unchanged(self):
        blocks = [
            _block("col-left", 0, 100, 20, 300),
            _block("title", 0, 0, 300, 40),
            _block("col-right", 200, 100, 20, 300),
            _block("", 50, 50, 60, 30),
        ]

        def fields(items):
            return sorted((b.x, b.y, b.width, b.height, b.text) for b in items)

        for direction in (VERTICAL_RL, HORIZONTAL_LTR):
            result = ReadingOrderAssembler(direction).process(blocks)
            assert fields(result) == fields(blocks)

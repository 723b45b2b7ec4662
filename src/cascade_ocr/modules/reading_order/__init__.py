from .assembler import DIRECTIONS, HORIZONTAL_LTR, VERTICAL_RL, ReadingOrderAssembler

__all__ = ["ReadingOrderAssembler", "DIRECTIONS", "VERTICAL_RL", "HORIZONTAL_LTR"]

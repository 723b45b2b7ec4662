from .detector import LayoutDetector

__all__ = ["LayoutDetector"]

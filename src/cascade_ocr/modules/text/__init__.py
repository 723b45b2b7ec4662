from .recognizer import CascadeRecognizer, TextRecognizer

__all__ = ["CascadeRecognizer", "TextRecognizer"]

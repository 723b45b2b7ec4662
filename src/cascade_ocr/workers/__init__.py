"""
Worker threads and their message protocols.

- OCRWorker: runs the whole pipeline off the caller's thread
- RecognitionPool / RecognitionWorker: parallel cascade recognition
"""

from .ocr import OCRWorker
from .pool import RecognitionPool, partition
from .recognition import RecognitionWorker, recognize_jobs

__all__ = ["OCRWorker", "RecognitionPool", "RecognitionWorker", "partition", "recognize_jobs"]

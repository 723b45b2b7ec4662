"""ONNX Runtime adapter used as the pipeline's inference engine."""

from .session import OnnxSession, create_session

__all__ = ["OnnxSession", "create_session"]

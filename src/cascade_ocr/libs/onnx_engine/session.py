"""ONNX Runtime inference session built from in-memory model bytes."""

from typing import Dict, List

import numpy as np
import onnxruntime

from ...errors import InferenceError


class OnnxSession:
    """Inference session with hardware acceleration.

    Components only rely on ``input_names``, ``output_names``, ``run`` and
    ``release``; any object with that shape can stand in for this class.
    """

    def __init__(
        self,
        model_bytes: bytes,
        use_gpu: bool = False,
        use_tensorrt: bool = False,
        num_threads: int = -1,
    ):
        """Initialize ONNX Runtime session.

        Args:
            model_bytes: Serialized ONNX model
            use_gpu: Enable CUDA GPU acceleration
            use_tensorrt: Enable TensorRT acceleration (requires TensorRT)
            num_threads: Intra-op threads for CPU execution (-1 for auto)
        """
        sess_opt = onnxruntime.SessionOptions()
        sess_opt.log_severity_level = 3
        sess_opt.graph_optimization_level = onnxruntime.GraphOptimizationLevel.ORT_ENABLE_ALL
        if num_threads != -1:
            sess_opt.intra_op_num_threads = num_threads

        try:
            self.session = onnxruntime.InferenceSession(
                model_bytes,
                sess_options=sess_opt,
                providers=self._get_providers(use_gpu, use_tensorrt),
            )
        except Exception as e:
            raise InferenceError(f"Failed to create inference session: {e}") from e

        # Cache input/output names
        self.input_names = [node.name for node in self.session.get_inputs()]
        self.output_names = [node.name for node in self.session.get_outputs()]

    @staticmethod
    def _get_providers(use_gpu: bool, use_tensorrt: bool) -> List:
        """Get execution providers based on hardware availability.

        Priority: TensorRT > CUDA > CPU
        """
        available_providers = onnxruntime.get_available_providers()
        providers = []

        if use_tensorrt and "TensorrtExecutionProvider" in available_providers:
            providers.append(("TensorrtExecutionProvider", {}))

        if use_gpu and "CUDAExecutionProvider" in available_providers:
            providers.append((
                "CUDAExecutionProvider",
                {"cudnn_conv_algo_search": "DEFAULT"}
            ))

        # CPU (always available as fallback)
        providers.append("CPUExecutionProvider")

        return providers

    def run(self, feed: Dict[str, np.ndarray]) -> List[np.ndarray]:
        """Run inference; outputs are returned in ``output_names`` order."""
        try:
            return self.session.run(self.output_names, input_feed=feed)
        except Exception as e:
            raise InferenceError(str(e)) from e

    def release(self) -> None:
        self.session = None


def create_session(model_bytes: bytes, use_gpu: bool = False) -> OnnxSession:
    """Default session factory."""
    return OnnxSession(model_bytes, use_gpu=use_gpu)

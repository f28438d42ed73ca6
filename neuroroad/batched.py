"""
PyTorch batched inference: every car brain evaluated in one pass.

Same contract as :meth:`NeuralNetwork.feed_forward`, executed as one batched
matrix-vector product per level on the selected device. CUDA launches are
asynchronous; :meth:`PendingOutputs.result` is the point where the caller
waits for them.
"""

import logging

import numpy as np
import torch

from .errors import ConfigurationError

log = logging.getLogger("batched")


def setup_device(prefer_cuda=True):
    if prefer_cuda and torch.cuda.is_available():
        log.info("GPU: %s", torch.cuda.get_device_name(0))
        return torch.device("cuda")
    log.info("Using CPU for batched inference (torch %s)", torch.__version__)
    return torch.device("cpu")


class PendingOutputs:
    """Handle for a dispatched batch. Call :meth:`result` to wait for it."""

    __slots__ = ['_out', '_rows', '_n', '_width']

    def __init__(self, out, rows, n, width):
        self._out = out
        self._rows = rows
        self._n = n
        self._width = width

    def result(self):
        """Block until the batch is finished; returns an ``(n, outputs)`` array."""
        result = np.zeros((self._n, self._width), dtype=np.float32)
        if self._out is not None:
            result[self._rows] = self._out.cpu().numpy()
        return result


class BatchedBrains:
    """All brains of a roster stacked into per-level tensors."""

    def __init__(self, networks, device=None):
        if not networks:
            raise ConfigurationError("cannot batch an empty list of networks")
        sizes = networks[0].layer_sizes
        for net in networks:
            if net.layer_sizes != sizes:
                raise ConfigurationError(f"cannot batch networks {sizes} and {net.layer_sizes}")

        self.device = device if device is not None else torch.device("cpu")
        self.n = len(networks)
        self.layer_sizes = sizes
        # [n, out, in] and [n, out] per level
        self.weights = []
        self.biases = []
        for i in range(len(sizes) - 1):
            w = np.stack([net.levels[i].weights for net in networks]).astype(np.float32)
            b = np.stack([net.levels[i].biases for net in networks]).astype(np.float32)
            self.weights.append(torch.from_numpy(w).to(self.device))
            self.biases.append(torch.from_numpy(b).to(self.device))

    @torch.no_grad()
    def dispatch(self, inputs, mask=None):
        """
        Launch the forward pass without waiting for it.

        inputs: (n, input_width) array
        mask: optional (n,) bool array; masked-out rows are skipped and come back as zeros
        """
        inputs = np.asarray(inputs, dtype=np.float32)
        assert inputs.shape == (self.n, self.layer_sizes[0]), (
            f"expected inputs of shape {(self.n, self.layer_sizes[0])}, got {inputs.shape}")

        rows = np.arange(self.n) if mask is None else np.where(mask)[0]
        if len(rows) == 0:
            return PendingOutputs(None, rows, self.n, self.layer_sizes[-1])

        idx = torch.from_numpy(rows).to(self.device)
        x = torch.from_numpy(inputs[rows]).to(self.device, non_blocking=True)
        for w, b in zip(self.weights, self.biases):
            # [k, out, in] @ [k, in, 1] -> [k, out]
            x = torch.tanh(torch.bmm(w[idx], x.unsqueeze(2)).squeeze(2) + b[idx])
        return PendingOutputs(x, rows, self.n, self.layer_sizes[-1])

    def forward(self, inputs, mask=None):
        return self.dispatch(inputs, mask).result()

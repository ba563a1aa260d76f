"""
Device Management Mixin for neurocable engines.

Gives the parallel engine one place to resolve its torch device and dtype,
and to build tensors on them.

Author: neurocable project
Date: March 2026
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

import torch


class DeviceMixin:
    """Mixin for standardized device and dtype handling.

    Usage:
        class MyEngine(DeviceMixin):
            def __init__(self, device: str = "cpu"):
                self.init_device(device, torch.float64)
                self.voltage = torch.zeros(10, **self.tensor_kwargs())
    """

    def init_device(
        self,
        device: Union[str, torch.device],
        dtype: Optional[torch.dtype] = None,
    ) -> None:
        """Initialize device from string or torch.device.

        Args:
            device: Device specification ('cpu', 'cuda', 'cuda:0', etc.)
            dtype: Floating dtype for state tensors (default float64)
        """
        if isinstance(device, str):
            self._device = torch.device(device)
        else:
            self._device = device
        self._dtype = dtype if dtype is not None else torch.float64

    @property
    def device(self) -> torch.device:
        """Get the current device."""
        if not hasattr(self, "_device"):
            self._device = torch.device("cpu")
        return self._device

    @property
    def dtype(self) -> torch.dtype:
        """Floating dtype of the state tensors."""
        if not hasattr(self, "_dtype"):
            self._dtype = torch.float64
        return self._dtype

    def tensor_kwargs(self) -> Dict[str, Any]:
        """``device``/``dtype`` keyword arguments for tensor factories."""
        return {"device": self.device, "dtype": self.dtype}

    def to_device(
        self,
        tensor: torch.Tensor,
        non_blocking: bool = False,
    ) -> torch.Tensor:
        """Move tensor to this engine's device and dtype.

        Args:
            tensor: Tensor to move
            non_blocking: Whether to use non-blocking transfer

        Returns:
            Tensor on the correct device
        """
        if tensor.device != self.device or tensor.dtype != self.dtype:
            return tensor.to(self.device, dtype=self.dtype, non_blocking=non_blocking)
        return tensor

    def is_cuda(self) -> bool:
        """Check if using CUDA device."""
        return self.device.type == "cuda"


__all__ = ["DeviceMixin"]

"""
Base Configuration Classes.

This module provides the base configuration class with the fields every
neurocable component shares (device, dtype). Specific configs
inherit from it.

Author: neurocable project
Date: March 2026
"""

from __future__ import annotations

from dataclasses import dataclass

import torch

from neurocable.errors import ConfigurationError


_DTYPE_MAP = {
    "float32": torch.float32,
    "float64": torch.float64,
    "float16": torch.float16,
    "bfloat16": torch.bfloat16,
}


@dataclass
class BaseConfig:
    """Base configuration with common fields for all components.

    This provides standard fields that appear in almost every config:
    - device: Hardware device (cpu/cuda)
    - dtype: Tensor data type of the parallel engine
    """

    device: str = "cpu"
    """Device to run on: 'cpu', 'cuda', 'cuda:0', etc."""

    dtype: str = "float64"
    """Data type for tensors: 'float32', 'float64', 'float16', 'bfloat16'.

    The tree solve divides by pivots that differ by orders of magnitude
    between soma and thin dendrites, so float64 is the default. float32 is
    fine for throughput runs."""

    def get_torch_device(self) -> torch.device:
        """Get PyTorch device object."""
        return torch.device(self.device)

    def get_torch_dtype(self) -> torch.dtype:
        """Get PyTorch dtype object."""
        if self.dtype not in _DTYPE_MAP:
            raise ConfigurationError(
                f"Unknown dtype '{self.dtype}'. "
                f"Choose from: {list(_DTYPE_MAP.keys())}"
            )
        return _DTYPE_MAP[self.dtype]


__all__ = ["BaseConfig"]

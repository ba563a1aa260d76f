"""
Diagnostics Mixin for neurocable engines.

Common statistics over voltages, gating variables and spike records so
that both engines report ``get_state`` / diagnostics with the same keys.

All methods are static and only use their arguments, so they work for
plain Python sequences (sequential engine) and tensors (parallel engine).

Author: neurocable project
Date: March 2026
"""

from __future__ import annotations

from typing import Dict, Sequence, Union

import torch

MS_PER_SECOND = 1000.0

ArrayLike = Union[torch.Tensor, Sequence[float]]


def _as_tensor(values: ArrayLike) -> torch.Tensor:
    if isinstance(values, torch.Tensor):
        return values.detach().to(torch.float64)
    return torch.as_tensor(list(values), dtype=torch.float64)


class DiagnosticsMixin:
    """Mixin providing common diagnostic computation patterns."""

    @staticmethod
    def voltage_diagnostics(
        voltages: ArrayLike,
        prefix: str = "",
    ) -> Dict[str, float]:
        """Mean, spread and extremes of membrane voltages (mV).

        Args:
            voltages: Voltages (any shape)
            prefix: Prefix for metric names (e.g., "apical" → "apical_v_mean")
        """
        prefix = f"{prefix}_" if prefix else ""
        v = _as_tensor(voltages)

        if v.numel() == 0:
            return {
                f"{prefix}v_mean": 0.0,
                f"{prefix}v_std": 0.0,
                f"{prefix}v_min": 0.0,
                f"{prefix}v_max": 0.0,
            }

        return {
            f"{prefix}v_mean": v.mean().item(),
            f"{prefix}v_std": v.std().item() if v.numel() > 1 else 0.0,
            f"{prefix}v_min": v.min().item(),
            f"{prefix}v_max": v.max().item(),
        }

    @staticmethod
    def gate_diagnostics(
        gates: ArrayLike,
        prefix: str = "",
    ) -> Dict[str, float]:
        """Range of gating variables; both ends must stay inside [0, 1]."""
        prefix = f"{prefix}_" if prefix else ""
        g = _as_tensor(gates)
        if g.numel() == 0:
            return {f"{prefix}gate_min": 0.0, f"{prefix}gate_max": 0.0}
        return {
            f"{prefix}gate_min": g.min().item(),
            f"{prefix}gate_max": g.max().item(),
        }

    @staticmethod
    def spike_diagnostics(
        spike_count: int,
        elapsed_ms: float,
        prefix: str = "",
    ) -> Dict[str, float]:
        """Spike count and mean firing rate over the elapsed time.

        Args:
            spike_count: Number of detected spikes
            elapsed_ms: Simulated time in milliseconds
            prefix: Prefix for metric names
        """
        prefix = f"{prefix}_" if prefix else ""
        rate_hz = spike_count * MS_PER_SECOND / elapsed_ms if elapsed_ms > 0 else 0.0
        return {
            f"{prefix}spike_count": float(spike_count),
            f"{prefix}firing_rate_hz": rate_hz,
        }


__all__ = ["DiagnosticsMixin"]

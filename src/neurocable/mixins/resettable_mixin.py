"""
Resettable State Mixin for neurocable engines.

Both engines separate what is fixed at construction (morphology, coupling
and parameter tables) from what evolves (voltages, gates, spike record).
``reset_state`` restores the evolving part to rest without rebuilding
anything.

Author: neurocable project
Date: March 2026
"""

from __future__ import annotations

import math


class ResettableMixin:
    """Mixin for engines with resettable dynamic state.

    Usage:
        class MyEngine(ResettableMixin):
            def reset_state(self) -> None:
                self.voltage = self.v_rest
                self.reset_spike_record()
    """

    def reset_state(self) -> None:
        """Return voltages and gates to rest and clear the spike record.

        Note:
            Subclasses must override this method to reset their
            specific state variables.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement reset_state()"
        )

    def reset_spike_record(self) -> None:
        """Clear step counter and scalar spike bookkeeping."""
        self._step_count = 0
        self.is_spiking = False
        self.last_spike_time = -math.inf


__all__ = ["ResettableMixin"]

"""
Mixins shared by the sequential and parallel engines.
"""

from neurocable.mixins.device_mixin import DeviceMixin
from neurocable.mixins.diagnostics_mixin import DiagnosticsMixin
from neurocable.mixins.resettable_mixin import ResettableMixin

__all__ = ["DeviceMixin", "DiagnosticsMixin", "ResettableMixin"]

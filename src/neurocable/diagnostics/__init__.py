"""
Cross-engine diagnostics.
"""

from neurocable.diagnostics.parity import CurrentSchedule, ParityReport, compare_engines

__all__ = ["CurrentSchedule", "ParityReport", "compare_engines"]

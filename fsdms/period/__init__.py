"""
Period key analysis.
"""

from .reducer import PeriodReducer, find_redundant_keys

__all__ = ["PeriodReducer", "find_redundant_keys"]

from windowkeeper.engine.dispatch import dispatch
from windowkeeper.engine.indicator import IndicatorSink, NullIndicatorSink, indicator_text
from windowkeeper.engine.matcher import windows_are_equal
from windowkeeper.engine.reconciler import PLACEHOLDER_URLS, ReconciliationEngine

__all__ = [
    "IndicatorSink",
    "NullIndicatorSink",
    "PLACEHOLDER_URLS",
    "ReconciliationEngine",
    "dispatch",
    "indicator_text",
    "windows_are_equal",
]

"""tablesync managers."""

from tablesync.managers.mutation import MutationEngine
from tablesync.managers.dispatcher import Dispatcher, ActionParams, parse_params
from tablesync.managers.registry import TableRegistry, get_registry, set_registry
from tablesync.managers.measures import MeasureAggregator, TIME_PERIODS, time_period

__all__ = [
    "MutationEngine",
    "Dispatcher",
    "ActionParams",
    "parse_params",
    "TableRegistry",
    "get_registry",
    "set_registry",
    "MeasureAggregator",
    "TIME_PERIODS",
    "time_period",
]

"""
Chronicle - Commit History Period Planning and Analysis

Partitions a repository's history into calendar or release periods, analyzes
each period with bounded concurrency, links commits to issues and pull
requests, and hands one ordered, conflict-resolved result to a document
renderer.
"""

__version__ = "0.1.0"

from .api import build_history, plan_history
from .config import ChronicleConfig, load_config
from .execution import AggregatedResult, ExecutionCoordinator
from .planning import Period, PeriodPlan, PeriodPlanner
from .serializers import result_to_dict

__all__ = [
    "build_history",  # Main entry point
    "plan_history",
    "load_config",
    "ChronicleConfig",
    "AggregatedResult",
    "ExecutionCoordinator",  # Advanced usage (direct coordinator access)
    "Period",
    "PeriodPlan",
    "PeriodPlanner",
    "result_to_dict",
]

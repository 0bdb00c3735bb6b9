"""Pipeline orchestration and concurrency primitives."""

from .assembly import OrderedResultAssembler
from .cancellation import CancellationToken
from .dispatcher import ConcurrencyLimitedDispatcher
from .eta import EtaEstimate, EtaEstimator
from .progress import ProgressAggregator, percent_complete
from .orchestrator import GenerationJob

__all__ = [
    "CancellationToken",
    "ConcurrencyLimitedDispatcher",
    "EtaEstimate",
    "EtaEstimator",
    "GenerationJob",
    "OrderedResultAssembler",
    "ProgressAggregator",
    "percent_complete",
]

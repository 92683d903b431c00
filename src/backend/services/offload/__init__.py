"""Background execution of sampling and alignment requests."""

from .protocol import (
    OffloadError,
    WorkerNotReadyError,
    WorkerRequestError,
    WorkerTerminatedError,
)
from .scheduler import (
    ChartSamplingManager,
    SamplingWorkerManager,
    get_sampling_worker,
    sample_data_safe,
    terminate_sampling_worker,
)
from .worker import SamplingWorker, handle_request

__all__ = [
    "ChartSamplingManager",
    "OffloadError",
    "SamplingWorker",
    "SamplingWorkerManager",
    "WorkerNotReadyError",
    "WorkerRequestError",
    "WorkerTerminatedError",
    "get_sampling_worker",
    "handle_request",
    "sample_data_safe",
    "terminate_sampling_worker",
]

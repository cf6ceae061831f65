"""
squrly crawler - paced, single-lane fetching.

- HttpClient: bounded-time GET with redirect following and a same-attempt
  https -> http fallback on transport/TLS failures
- TaskQueue: FIFO queue with one worker and a fixed interval between task starts
- RetryScheduler: one delayed retry per URL, tracked for completion accounting
"""

from .errors import FetchError, FetchTimeoutError, StatusError, TransportError
from .http_client import HttpClient
from .rate_limiter import QueueState, TaskQueue
from .retry import RetryScheduler

__all__ = [
    "FetchError",
    "FetchTimeoutError",
    "HttpClient",
    "QueueState",
    "RetryScheduler",
    "StatusError",
    "TaskQueue",
    "TransportError",
]

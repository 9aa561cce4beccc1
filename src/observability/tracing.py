"""
Request tracing and ledger operation tracking
"""
from typing import Callable, Optional
from functools import wraps
import time
from src.observability.logging import generate_request_id, set_request_id, get_request_id, get_logger
from src.observability.metrics import get_metrics_collector
from src.utils.exceptions import BrokerageServerError

logger = get_logger(__name__)


class RequestContext:
    """Context manager binding a request ID to everything logged inside it"""

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id or generate_request_id()
        self.start_time = time.time()
        self.status_code: Optional[int] = None
        self._previous_request_id: Optional[str] = None

    def __enter__(self):
        self._previous_request_id = get_request_id()
        set_request_id(self.request_id)
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = self.elapsed_ms()
        if exc_type is not None:
            logger.error(
                "Request failed",
                extra={"duration_ms": duration_ms, "error_type": exc_type.__name__}
            )
        set_request_id(self._previous_request_id)
        return False

    def elapsed_ms(self) -> float:
        return (time.time() - self.start_time) * 1000


def track_operation(operation: str):
    """
    Decorator recording duration and outcome of a ledger operation.

    Domain errors count as failed operations and are re-raised unchanged.

    Usage:
        @track_operation("trade_buy")
        def execute_buy(db, ...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            metrics = get_metrics_collector()
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except BrokerageServerError as e:
                metrics.record_ledger_operation(
                    operation,
                    (time.time() - start_time) * 1000,
                    success=False,
                    error_code=e.error_code
                )
                raise
            except Exception as e:
                metrics.record_ledger_operation(
                    operation,
                    (time.time() - start_time) * 1000,
                    success=False,
                    error_code=type(e).__name__
                )
                raise
            metrics.record_ledger_operation(operation, (time.time() - start_time) * 1000, success=True)
            return result

        return wrapper
    return decorator

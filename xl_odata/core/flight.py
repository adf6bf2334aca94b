"""
xl_odata.core.flight - Shared in-flight calls
==============================================

Collapses concurrent calls for the same resource into one. The first caller
runs the function; callers arriving while it runs wait for that call and get
its result, or re-raise its exception. The slot is cleared once the call
finishes, so a later caller starts a new attempt.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Callable, Generic, Optional, TypeVar
import threading

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """
    One in-flight call at a time.

    Examples
    --------
    >>> flight = SingleFlight()
    >>> flight.run(lambda: 42)
    42
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._future: Optional[Future] = None

    @property
    def in_flight(self) -> bool:
        return self._future is not None

    def run(self, fn: Callable[[], T]) -> T:
        with self._lock:
            future = self._future
            leader = future is None
            if leader:
                future = Future()
                self._future = future

        if not leader:
            return future.result()

        try:
            result = fn()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._future = None

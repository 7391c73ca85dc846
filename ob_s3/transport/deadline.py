from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TypeVar

T = TypeVar("T")


def run_with_deadline(
    operation: Callable[[], T],
    timeout_seconds: float,
    timeout_error: Callable[[], Exception],
    on_timeout: Callable[[], None] | None = None,
    on_late_result: Callable[[T], None] | None = None,
) -> T:
    """Race ``operation`` against a wall-clock timer.

    When the timer wins, ``on_timeout`` runs (used to tear down the in-flight
    connection) and the exception built by ``timeout_error`` is raised. The
    worker thread is abandoned, never joined; if it still succeeds later,
    ``on_late_result`` receives its result.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ob-s3-deadline")
    future = executor.submit(operation)
    try:
        return future.result(timeout=max(timeout_seconds, 0.001))
    except FutureTimeoutError:
        if future.done():
            return future.result()
        future.cancel()
        if on_late_result is not None:
            future.add_done_callback(_late_result_callback(on_late_result))
        if on_timeout is not None:
            on_timeout()
        raise timeout_error() from None
    finally:
        executor.shutdown(wait=False)


def _late_result_callback(handler: Callable[[T], None]) -> Callable[[Future[T]], None]:
    def callback(future: Future[T]) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        handler(future.result())

    return callback

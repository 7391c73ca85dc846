import threading
from collections.abc import Callable
from dataclasses import dataclass

from ob_s3.logging.logger import Log
from ob_s3.worker.models import ProcessOutcome

MIN_INTERVAL_MS = 500


@dataclass(frozen=True)
class SchedulerStatus:
    running: bool
    in_flight: bool
    interval_ms: int


class Scheduler:
    """Timer loop that processes one queue item per tick.

    A tick that arrives while the previous one is still running is dropped,
    not queued. ``start``/``stop`` are idempotent.
    """

    def __init__(
        self,
        process_one: Callable[[], ProcessOutcome],
        interval_ms: int = 2500,
    ) -> None:
        self._process_one = process_one
        self._interval_ms = max(MIN_INTERVAL_MS, int(interval_ms))
        self._in_flight = False
        self._guard = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    @property
    def interval_seconds(self) -> float:
        return self._interval_ms / 1000

    def tick(self) -> bool:
        """Process one item unless a tick is already in flight.

        Returns False when the tick was skipped.
        """
        with self._guard:
            if self._in_flight:
                Log.debug("Scheduler tick skipped: in flight")
                return False
            self._in_flight = True
        try:
            outcome = self._process_one()
            Log.debug("Scheduler tick", processed=outcome.processed, upload_id=outcome.upload_id)
        except Exception as exc:
            Log.error(f"Scheduler tick failed: {exc}")
        finally:
            with self._guard:
                self._in_flight = False
        return True

    def start(self) -> None:
        """Tick once immediately, then every interval on a daemon thread."""
        with self._guard:
            if self._running:
                Log.info("Scheduler already running")
                return
            self._running = True
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._loop,
                args=(self._stop_event,),
                name="ob-s3-scheduler",
                daemon=True,
            )
        Log.info("Scheduler started", interval_ms=self._interval_ms)
        self._thread.start()

    def stop(self) -> None:
        with self._guard:
            if not self._running:
                return
            self._running = False
            self._stop_event.set()
        Log.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    def status(self) -> SchedulerStatus:
        with self._guard:
            return SchedulerStatus(
                running=self._running,
                in_flight=self._in_flight,
                interval_ms=self._interval_ms,
            )

    def run(self, max_ticks: int | None = None) -> None:
        """Blocking loop in the calling thread. Runs until stopped or interrupted.

        If max_ticks is set, return after that many ticks (for testing).
        """
        Log.info("Scheduler polling upload queue", interval_ms=self._interval_ms)
        self._running = True
        self._stop_event = threading.Event()
        ticks = 0
        try:
            while not self._stop_event.is_set():
                self.tick()
                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break
                self._stop_event.wait(self.interval_seconds)
        except KeyboardInterrupt:
            Log.info("Scheduler shutting down gracefully")
        finally:
            self._running = False

    def _loop(self, stop_event: threading.Event) -> None:
        self.tick()
        while not stop_event.wait(self.interval_seconds):
            self.tick()

"""
Wall-clock timing of fit stages.

A fit reports how long its pilot, penalized, baseline and prediction
stages took; a cross-validation sweep reports the accumulated time spent
fitting and scoring over all folds.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Stage timer whose named sections accumulate across repeated entries.

    Usage:
        timer = Timer()
        timer.start()
        for fold in folds:
            with timer.section('fits'):
                fit = fit_cooplasso(...)
        timer.stop()
        timer.result()
        # {'total_seconds': 1.2, 'fits': 1.1}
    """

    def __init__(self):
        self._sections: dict[str, float] = {}
        self._t0: float | None = None
        self._total: float | None = None

    def start(self) -> None:
        self._t0 = time.perf_counter()
        self._total = None

    def stop(self) -> None:
        if self._t0 is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._t0

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """
        Add the time spent inside the block to section ``name``.

        The time is recorded even when the block raises.
        """
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self._sections[name] = (
                self._sections.get(name, 0.0) + time.perf_counter() - t0
            )

    def result(self) -> dict[str, float]:
        """
        Total and per-section seconds.

        Raises:
            RuntimeError: If the timer has not been stopped
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")
        return {'total_seconds': self._total, **self._sections}


@contextmanager
def timed() -> Iterator[Timer]:
    """
    Time a whole block; the timer is stopped on exit.

    Usage:
        with timed() as timer:
            sol = cv_cooplasso(...)
        timer.result()['total_seconds']
    """
    timer = Timer()
    timer.start()
    try:
        yield timer
    finally:
        timer.stop()

"""
===============================================================================
AIRBRAKE GNC - Coast Sample Buffer
===============================================================================
Fixed-capacity ring buffer of ``(cumulative coast time, vertical
acceleration)`` pairs, fed once per physics step during the coast phase and
read in chronological order by the curve fitter.
===============================================================================
"""

from typing import Tuple

import numpy as np

from airbrake_gnc.core.constants import DEFAULT_BUFFER_CAPACITY, MIN_SAMPLE_DT


class CoastSampleBuffer:
    """Fixed-size ring buffer of coast-phase acceleration samples.

    Why a ring buffer?
    ------------------
    The curve fitter sweeps the whole buffer on every refit, so the buffer
    must stay bounded or the per-step cost would grow for the entire coast.
    Storage is two pre-allocated NumPy arrays; once ``capacity`` samples
    have been written the oldest sample is overwritten (FIFO eviction).

    Memory layout
    -------------
    * ``_times``  -- ``float64[capacity]``, cumulative coast time (s)
    * ``_accels`` -- ``float64[capacity]``, acceleration incl. gravity (m/s^2)

    ``_head`` is the next write position and ``_count`` the number of valid
    slots.  The cumulative clock keeps running across evictions, so the
    retained time axis is always strictly increasing.

    Parameters
    ----------
    capacity : int
        Maximum number of samples to retain.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self._capacity: int = capacity
        self._times: np.ndarray = np.zeros(capacity, dtype=np.float64)
        self._accels: np.ndarray = np.zeros(capacity, dtype=np.float64)

        self._head: int = 0
        self._count: int = 0
        self._clock: float = 0.0

    # -- write -------------------------------------------------------------

    def append(self, dt: float, accel: float) -> float:
        """Advance the coast clock by ``dt`` and record ``accel`` at it.

        Parameters
        ----------
        dt : float
            Time since the previous sample (s).  Floored at a microsecond so
            the time axis stays strictly increasing.
        accel : float
            Vertical acceleration including gravity (m/s^2).

        Returns
        -------
        float
            Cumulative coast time stamped on the new sample.
        """
        self._clock += max(float(dt), MIN_SAMPLE_DT)
        self._times[self._head] = self._clock
        self._accels[self._head] = accel
        self._head = (self._head + 1) % self._capacity
        self._count = min(self._count + 1, self._capacity)
        return self._clock

    def clear(self) -> None:
        """Drop every sample and restart the coast clock at zero."""
        self._times[:] = 0.0
        self._accels[:] = 0.0
        self._head = 0
        self._count = 0
        self._clock = 0.0

    # -- read --------------------------------------------------------------

    def to_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(times, accels)`` copies in chronological order."""
        if self._count == 0:
            return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.float64)
        indices = self._chronological_indices()
        return self._times[indices].copy(), self._accels[indices].copy()

    @property
    def elapsed(self) -> float:
        """Cumulative coast time of the newest sample (s)."""
        return self._clock

    @property
    def count(self) -> int:
        return self._count

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return self._count == self._capacity

    # -- internals ---------------------------------------------------------

    def _chronological_indices(self) -> np.ndarray:
        # Before wrapping the oldest sample is at 0, afterwards at _head.
        if self._count < self._capacity:
            return np.arange(self._count)
        return np.roll(np.arange(self._capacity), -self._head)

    def __len__(self) -> int:
        return self._count

    def __repr__(self) -> str:
        return (
            f"CoastSampleBuffer(count={self._count}/{self._capacity}, "
            f"elapsed={self._clock:.3f} s)"
        )

"""
===============================================================================
AIRBRAKE GNC - Bang-Bang Airbrake Controller
===============================================================================
Two-state (retracted / fully extended) airbrake law driven by the apogee
predictor.  Once per step:

  1. Latch the coast anchor time on the first step with coast data.
  2. Pick an estimate: strict if the fit has converged, otherwise best
     effort once ``min_coast_s`` has elapsed since the anchor.
  3. err = estimate - target
  4. Hysteresis:
        UNKNOWN   -> EXTENDED if err > +deadband, else RETRACTED
        EXTENDED  -> RETRACTED only if err < -deadband
        RETRACTED -> EXTENDED as soon as err >= 0
  5. Fire extend_airbrakes() / retract_airbrakes() only on a state change.

The band is deliberately asymmetric: braking re-engages at zero error but
disengages only past the full deadband.

The setpoint (0 or 1) persists across steps where no usable estimate
exists, so the actuator keeps slewing toward the last decision.
===============================================================================
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from airbrake_gnc.config import ControllerConfig

logger = logging.getLogger(__name__)


class DeployState(Enum):
    UNKNOWN = "unknown"
    RETRACTED = "retracted"
    EXTENDED = "extended"


class EstimateSource(Enum):
    STRICT = "strict"
    BEST_EFFORT = "best_effort"


class AirbrakeCommandSink(ABC):
    """Receiver of the controller's discrete commands (hardware or sim)."""

    @abstractmethod
    def extend_airbrakes(self) -> None:
        ...

    @abstractmethod
    def retract_airbrakes(self) -> None:
        ...


@dataclass(frozen=True)
class ControllerDecision:
    """Outcome of one controller step that had a usable estimate."""
    time: float
    source: EstimateSource
    estimate: float
    error: float
    state: DeployState
    commanded: bool


class BangBangController:
    """
    Hysteresis bang-bang controller.

    Parameters
    ----------
    predictor
        Anything providing ``sample_count()``, ``get_prediction_if_ready()``
        and ``get_apogee_best_effort()``; normally an ApogeePredictor.
    context : AirbrakeCommandSink, optional
        Command receiver.  None runs the controller setpoint-only.
    target_apogee_m : float
        Desired apogee (m).
    deadband_m : float
        Hysteresis half-width (m); negative values are clamped to 0.
    min_coast_s : float
        Coast time before best-effort estimates may drive a decision.
    max_coast_s : float
        Nominal end of the best-effort window (s).  Informational; kept
        >= min_coast_s.
    min_dwell_s : float
        Minimum time between two flips; 0 disables.  The first decision
        is never suppressed.
    """

    def __init__(self, predictor, context: Optional[AirbrakeCommandSink] = None,
                 target_apogee_m: float = 2600.0, deadband_m: float = 5.0,
                 min_coast_s: float = 0.5, max_coast_s: float = 5.0,
                 min_dwell_s: float = 0.0):
        self.predictor = predictor
        self.context = context
        self.target_apogee_m = float(target_apogee_m)
        self.deadband_m = max(0.0, float(deadband_m))
        self.min_coast_s = max(0.0, float(min_coast_s))
        self.max_coast_s = max(self.min_coast_s, float(max_coast_s))
        self.min_dwell_s = max(0.0, float(min_dwell_s))

        self._state = DeployState.UNKNOWN
        self._coast_anchor: Optional[float] = None
        self._last_flip_time: Optional[float] = None
        self._last_decision: Optional[ControllerDecision] = None
        self._command_count = 0

    @classmethod
    def from_config(cls, predictor, config: ControllerConfig,
                    context: Optional[AirbrakeCommandSink] = None) -> "BangBangController":
        return cls(
            predictor,
            context,
            target_apogee_m=config.target_apogee_m,
            deadband_m=config.deadband_m,
            min_coast_s=config.min_coast_s,
            max_coast_s=config.max_coast_s,
            min_dwell_s=config.min_dwell_s,
        )

    # ------------------------------------------------------------------

    def update_and_gate_flexible(self, current_time: float) -> bool:
        """
        Run one controller step.

        Returns
        -------
        bool
            True when a new extend/retract command fired this step.
        """
        if self._coast_anchor is None:
            if self.predictor.sample_count() <= 0:
                return False
            self.notify_coast_latched(current_time)

        estimate, source = self._select_estimate(current_time)
        if estimate is None:
            return False

        error = estimate - self.target_apogee_m
        desired = self._decide(error)

        commanded = False
        if desired is not self._state and not self._dwell_blocks(current_time):
            self._apply(desired, current_time, estimate, error, source)
            commanded = True
        else:
            logger.debug("Holding %s: apogee %.1f m (%s), err %+.1f m",
                         self._state.value, estimate, source.value, error)

        self._last_decision = ControllerDecision(
            time=current_time, source=source, estimate=estimate, error=error,
            state=self._state, commanded=commanded,
        )
        return commanded

    def current_setpoint(self) -> float:
        """1.0 while EXTENDED, otherwise 0.0."""
        return 1.0 if self._state is DeployState.EXTENDED else 0.0

    def notify_coast_latched(self, time: float) -> None:
        """Anchor the coast clock at ``time``; later calls are ignored."""
        if self._coast_anchor is not None:
            return
        self._coast_anchor = float(time)
        logger.info("Coast latched at t=%.3f s", self._coast_anchor)

    def reset(self) -> None:
        self._state = DeployState.UNKNOWN
        self._coast_anchor = None
        self._last_flip_time = None
        self._last_decision = None
        self._command_count = 0

    # ------------------------------------------------------------------

    @property
    def state(self) -> DeployState:
        return self._state

    @property
    def coast_anchor_time(self) -> Optional[float]:
        return self._coast_anchor

    @property
    def last_decision(self) -> Optional[ControllerDecision]:
        return self._last_decision

    @property
    def command_count(self) -> int:
        return self._command_count

    # ------------------------------------------------------------------

    def _select_estimate(self, current_time: float):
        strict = self.predictor.get_prediction_if_ready()
        if strict is not None and np.isfinite(strict):
            return strict, EstimateSource.STRICT

        if current_time - self._coast_anchor < self.min_coast_s:
            return None, None
        best = self.predictor.get_apogee_best_effort()
        if best is not None and np.isfinite(best):
            return best, EstimateSource.BEST_EFFORT
        return None, None

    def _decide(self, error: float) -> DeployState:
        if self._state is DeployState.EXTENDED:
            return DeployState.RETRACTED if error < -self.deadband_m else DeployState.EXTENDED
        if self._state is DeployState.RETRACTED:
            return DeployState.EXTENDED if error >= 0.0 else DeployState.RETRACTED
        return DeployState.EXTENDED if error > self.deadband_m else DeployState.RETRACTED

    def _dwell_blocks(self, current_time: float) -> bool:
        if self.min_dwell_s <= 0.0 or self._last_flip_time is None:
            return False
        return current_time - self._last_flip_time < self.min_dwell_s

    def _apply(self, desired: DeployState, current_time: float, estimate: float,
               error: float, source: EstimateSource) -> None:
        self._state = desired
        self._last_flip_time = current_time
        self._command_count += 1

        if desired is DeployState.EXTENDED:
            logger.info("EXTEND at t=%.3f s: apogee %.1f m (%s), err %+.1f m",
                        current_time, estimate, source.value, error)
            if self.context is not None:
                self.context.extend_airbrakes()
        else:
            logger.info("RETRACT at t=%.3f s: apogee %.1f m (%s), err %+.1f m",
                        current_time, estimate, source.value, error)
            if self.context is not None:
                self.context.retract_airbrakes()

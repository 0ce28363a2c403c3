"""
===============================================================================
AIRBRAKE GNC - Configuration
===============================================================================
Typed configuration for the predictor, controller, actuator, vehicle and
simulation, loaded from a YAML file:

    controller:    target apogee, deadband, coast windows, minimum dwell
    predictor:     buffer size, refit threshold, integration, convergence
    actuator:      deployment slew rate
    vehicle:       mass, reference areas, drag, Mach gate, boost
    drag_surface:  CSV path and extrapolation policy
    simulation:    step size and launch conditions

Missing keys take the dataclass defaults.  Out-of-range values are clamped to
the nearest valid value with a warning rather than rejected, so a bad field
never prevents a flight computer from starting.
===============================================================================
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from airbrake_gnc.core.constants import (
    DEFAULT_BUFFER_CAPACITY,
    DEFAULT_HORIZON_S,
    DEFAULT_INIT_A,
    DEFAULT_INIT_B,
    DEFAULT_INTEGRATION_DT,
    DEFAULT_MIN_PACKETS,
    DEFAULT_UNCERTAINTY_THRESHOLD,
    STANDARD_GRAVITY,
)

logger = logging.getLogger(__name__)


def _clamp_min(name: str, value: float, minimum: float) -> float:
    if value < minimum:
        logger.warning("Config %s=%s below %s; clamped", name, value, minimum)
        return minimum
    return value


@dataclass
class ControllerConfig:
    target_apogee_m: float = 2600.0
    deadband_m: float = 5.0
    min_coast_s: float = 0.5
    max_coast_s: float = 5.0
    min_dwell_s: float = 0.0

    def __post_init__(self) -> None:
        self.deadband_m = _clamp_min("deadband_m", self.deadband_m, 0.0)
        self.min_coast_s = _clamp_min("min_coast_s", self.min_coast_s, 0.0)
        self.max_coast_s = _clamp_min("max_coast_s", self.max_coast_s, self.min_coast_s)
        self.min_dwell_s = _clamp_min("min_dwell_s", self.min_dwell_s, 0.0)


@dataclass
class PredictorConfig:
    min_packets: int = DEFAULT_MIN_PACKETS
    buffer_capacity: int = DEFAULT_BUFFER_CAPACITY
    horizon_s: float = DEFAULT_HORIZON_S
    integration_dt_s: float = DEFAULT_INTEGRATION_DT
    uncertainty_threshold: float = DEFAULT_UNCERTAINTY_THRESHOLD
    init_a: float = DEFAULT_INIT_A
    init_b: float = DEFAULT_INIT_B
    gravity_m_s2: float = STANDARD_GRAVITY

    def __post_init__(self) -> None:
        # Two parameters need at least three samples for a residual variance.
        self.min_packets = int(_clamp_min("min_packets", self.min_packets, 3))
        self.buffer_capacity = int(_clamp_min("buffer_capacity", self.buffer_capacity,
                                              self.min_packets))
        self.integration_dt_s = _clamp_min("integration_dt_s", self.integration_dt_s, 1.0e-4)
        self.horizon_s = _clamp_min("horizon_s", self.horizon_s, self.integration_dt_s)
        self.uncertainty_threshold = _clamp_min("uncertainty_threshold",
                                                self.uncertainty_threshold, 0.0)
        self.init_a = min(self.init_a, 0.0)
        self.init_b = max(self.init_b, 0.0)
        self.gravity_m_s2 = _clamp_min("gravity_m_s2", self.gravity_m_s2, 1.0e-3)


@dataclass
class ActuatorConfig:
    # <= 0 means the deployment follows the setpoint instantly
    max_deployment_rate_per_s: float = 2.0


@dataclass
class VehicleConfig:
    dry_mass_kg: float = 20.0
    reference_area_m2: float = 0.0081
    drag_coefficient: float = 0.45
    airbrake_area_m2: float = 0.004
    airbrake_drag_coefficient: float = 1.2
    max_mach_for_deployment: float = 0.9
    thrust_n: float = 2400.0
    burn_time_s: float = 2.5

    def __post_init__(self) -> None:
        self.dry_mass_kg = _clamp_min("dry_mass_kg", self.dry_mass_kg, 1.0e-3)
        self.reference_area_m2 = _clamp_min("reference_area_m2", self.reference_area_m2, 0.0)
        self.airbrake_area_m2 = _clamp_min("airbrake_area_m2", self.airbrake_area_m2, 0.0)
        self.thrust_n = _clamp_min("thrust_n", self.thrust_n, 0.0)
        self.burn_time_s = _clamp_min("burn_time_s", self.burn_time_s, 0.0)


@dataclass
class DragSurfaceConfig:
    csv_path: Optional[str] = None
    extrapolation: str = "constant"


@dataclass
class SimulationConfig:
    dt_s: float = 0.01
    max_time_s: float = 60.0
    launch_altitude_m: float = 0.0
    # Both set: skip the boost and start coasting from this state.
    burnout_altitude_m: Optional[float] = None
    burnout_velocity_m_s: Optional[float] = None

    @property
    def starts_in_coast(self) -> bool:
        return self.burnout_altitude_m is not None and self.burnout_velocity_m_s is not None

    def __post_init__(self) -> None:
        self.dt_s = _clamp_min("dt_s", self.dt_s, 1.0e-4)
        self.max_time_s = _clamp_min("max_time_s", self.max_time_s, self.dt_s)


@dataclass
class AirbrakeConfig:
    """Top-level configuration; one field per YAML section."""
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    predictor: PredictorConfig = field(default_factory=PredictorConfig)
    actuator: ActuatorConfig = field(default_factory=ActuatorConfig)
    vehicle: VehicleConfig = field(default_factory=VehicleConfig)
    drag_surface: DragSurfaceConfig = field(default_factory=DragSurfaceConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AirbrakeConfig":
        """Build from a parsed YAML mapping."""
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping, got {type(data).__name__}")

        sections = {}
        for section in fields(cls):
            raw = data.get(section.name, {}) or {}
            if not isinstance(raw, dict):
                raise ValueError(
                    f"Configuration section '{section.name}' must be a mapping, "
                    f"got {type(raw).__name__}"
                )
            section_cls = section.default_factory
            known = {f.name for f in fields(section_cls)}
            for key in sorted(set(raw) - known):
                logger.warning("Ignoring unknown config key %s.%s", section.name, key)
            sections[section.name] = section_cls(**{k: v for k, v in raw.items() if k in known})

        for key in sorted(set(data) - set(sections)):
            logger.warning("Ignoring unknown config section %s", key)
        return cls(**sections)


def load_config(config_path: Union[str, Path, None] = None) -> AirbrakeConfig:
    """
    Load the airbrake configuration from a YAML file.

    Args:
        config_path: Path to a YAML config.  None returns the defaults.

    Returns:
        AirbrakeConfig with every section populated
    """
    if config_path is None:
        logger.info("No configuration file given; using defaults")
        return AirbrakeConfig()

    logger.info("Loading configuration from: %s", config_path)
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f)
    config = AirbrakeConfig.from_dict(data)

    # Relative CSV paths are resolved against the config file's directory.
    csv_path = config.drag_surface.csv_path
    if csv_path and not Path(csv_path).is_absolute():
        config.drag_surface.csv_path = str(Path(config_path).parent / csv_path)

    logger.info("Target apogee: %.1f m (deadband %.1f m)",
                config.controller.target_apogee_m, config.controller.deadband_m)
    return config

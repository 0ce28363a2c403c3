"""
===============================================================================
AIRBRAKE GNC - Airbrake Aerodynamics
===============================================================================
Incremental airbrake drag as a function of Mach number and deployment
fraction, tabulated on a rectangular grid (typically from CFD) and
interpolated bilinearly.

CSV ingestion is tolerant of the usual export variations:

  - column names are matched case-, space-, underscore-, dash- and
    percent-insensitively (``Mach``, ``Deployment %``, ``DeltaDrag_N`` ...)
  - coefficient columns (anything containing ``cd``) are never taken as
    the drag column
  - deployment given in percent is converted to a fraction
  - scattered points are resampled onto the grid spanned by their unique
    axis values; missing nodes are filled by inverse-distance weighting

Outside the grid the surface follows its ExtrapolationType:

    CONSTANT : clamp inputs to the grid edges (default)
    ZERO     : 0 N outside the grid
    NATURAL  : linear extrapolation of the edge cells
===============================================================================
"""

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.interpolate import RegularGridInterpolator

from airbrake_gnc.dynamics.environment import StandardAtmosphere

logger = logging.getLogger(__name__)

MACH_COLUMNS = ("mach", "machnumber", "m")
DEPLOYMENT_COLUMNS = ("deployment", "deploymentpercentage", "deploymentfraction",
                      "deploy", "extension", "airbrakeext")
PREFERRED_DRAG_COLUMNS = ("deltadrag", "dragforce")
EXACT_DRAG_COLUMNS = ("drag", "force", "dragn")

IDW_NEIGHBOURS = 8
IDW_POWER = 2.0
IDW_EPSILON = 1.0e-12


class ExtrapolationType(Enum):
    CONSTANT = "constant"
    ZERO = "zero"
    NATURAL = "natural"

    @classmethod
    def parse(cls, value: Union[str, "ExtrapolationType", None]) -> "ExtrapolationType":
        if value is None:
            return cls.CONSTANT
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown extrapolation '{value}'; expected one of "
                f"{[e.value for e in cls]}"
            ) from None


# ============================================================================
#  CSV HELPERS
# ============================================================================

def _clean(name: str) -> str:
    return re.sub(r"[%_\-\s]", "", str(name).strip().lower())


def _pick_column(columns: Sequence[str], names: Sequence[str]) -> str:
    cleaned = {_clean(c): c for c in columns}
    for n in names:
        if n in cleaned:
            return cleaned[n]
    for key, original in cleaned.items():
        if any(n in key for n in names):
            return original
    raise ValueError(f"CSV missing column; need one of {list(names)}, got {list(columns)}")


def _pick_drag_column(columns: Sequence[str]) -> str:
    best = None
    for col in columns:
        key = _clean(col)
        if "cd" in key:
            continue
        if any(p in key for p in PREFERRED_DRAG_COLUMNS) or key in EXACT_DRAG_COLUMNS:
            return col
        if "drag" in key:
            best = col
    if best is None:
        raise ValueError(f"CSV missing drag/force column (not Cd); got {list(columns)}")
    return best


def _idw(points: np.ndarray, values: np.ndarray, query: np.ndarray,
         k: int = IDW_NEIGHBOURS, power: float = IDW_POWER,
         eps: float = IDW_EPSILON) -> float:
    """Inverse-distance-weighted estimate at ``query`` from the k nearest points."""
    dist = np.hypot(points[:, 0] - query[0], points[:, 1] - query[1])
    nearest = int(np.argmin(dist))
    if dist[nearest] <= eps:
        return float(values[nearest])
    order = np.argsort(dist)[:k]
    weights = 1.0 / (dist[order] + eps) ** power
    return float(np.sum(weights * values[order]) / np.sum(weights))


# ============================================================================
#  DRAG SURFACE
# ============================================================================

class DragSurface:
    """
    Bilinear Mach x deployment -> drag [N] surface.

    Parameters
    ----------
    machs : array_like (nx,)
        Strictly increasing Mach axis.
    deployments : array_like (ny,)
        Strictly increasing deployment-fraction axis.
    values : array_like (nx, ny)
        Drag (N) at every grid node.
    extrapolation : ExtrapolationType or str
        Behaviour outside the grid.
    """

    def __init__(self, machs, deployments, values,
                 extrapolation: Union[str, ExtrapolationType] = ExtrapolationType.CONSTANT):
        self.machs = np.asarray(machs, dtype=float)
        self.deployments = np.asarray(deployments, dtype=float)
        self.values = np.asarray(values, dtype=float)
        self.extrapolation = ExtrapolationType.parse(extrapolation)

        if self.machs.size < 2 or self.deployments.size < 2:
            raise ValueError(
                f"Need >= 2 distinct Mach and deployment values, got "
                f"{self.machs.size} x {self.deployments.size}"
            )
        if np.any(np.diff(self.machs) <= 0) or np.any(np.diff(self.deployments) <= 0):
            raise ValueError("Grid axes must be strictly increasing")
        if self.values.shape != (self.machs.size, self.deployments.size):
            raise ValueError(
                f"Grid shape {self.values.shape} does not match axes "
                f"({self.machs.size}, {self.deployments.size})"
            )
        if not np.all(np.isfinite(self.values)):
            raise ValueError("Drag grid contains non-finite values")

        self._interp = RegularGridInterpolator(
            (self.machs, self.deployments), self.values,
            method="linear", bounds_error=False, fill_value=None,
        )

    @classmethod
    def from_grid(cls, machs, deployments, values,
                  extrapolation: Union[str, ExtrapolationType] = ExtrapolationType.CONSTANT
                  ) -> "DragSurface":
        return cls(machs, deployments, values, extrapolation)

    @classmethod
    def from_csv(cls, csv_path: Union[str, Path],
                 extrapolation: Union[str, ExtrapolationType] = ExtrapolationType.CONSTANT
                 ) -> "DragSurface":
        """
        Load a (possibly scattered) drag table from CSV.

        The delimiter (comma, semicolon or tab) is sniffed from the file.

        Raises
        ------
        ValueError
            Missing columns, no numeric rows, or fewer than two distinct
            values along either axis.
        """
        if csv_path is None or not str(csv_path).strip():
            raise ValueError("Drag surface CSV path is empty")

        df = pd.read_csv(csv_path, sep=None, engine="python", skipinitialspace=True)
        if df.shape[1] < 3:
            raise ValueError(f"CSV header has fewer than 3 columns: {list(df.columns)}")

        columns = [str(c) for c in df.columns]
        df.columns = columns
        mach_col = _pick_column(columns, MACH_COLUMNS)
        dep_col = _pick_column(columns, DEPLOYMENT_COLUMNS)
        drag_col = _pick_drag_column(columns)

        data = pd.DataFrame({
            "mach": pd.to_numeric(df[mach_col], errors="coerce"),
            "deployment": pd.to_numeric(df[dep_col], errors="coerce"),
            "drag": pd.to_numeric(df[drag_col], errors="coerce"),
        })
        data = data[np.isfinite(data.to_numpy()).all(axis=1)]
        if data.empty:
            raise ValueError(f"CSV has headers but no valid numeric rows: {csv_path}")

        if data["deployment"].median() > 1.01:
            logger.debug("Deployment column looks like percent; converting to fraction")
            data["deployment"] = data["deployment"] / 100.0

        data = data.drop_duplicates(subset=["mach", "deployment"], keep="first")
        machs = np.sort(data["mach"].unique())
        deployments = np.sort(data["deployment"].unique())
        if machs.size < 2 or deployments.size < 2:
            raise ValueError(
                f"Need >= 2 distinct Mach and >= 2 distinct deployment values, "
                f"got nx={machs.size} ny={deployments.size}"
            )

        grid = (data.pivot(index="mach", columns="deployment", values="drag")
                .reindex(index=machs, columns=deployments)
                .to_numpy(dtype=float))

        missing = np.argwhere(np.isnan(grid))
        if missing.size:
            points = data[["mach", "deployment"]].to_numpy()
            values = data["drag"].to_numpy()
            for i, j in missing:
                grid[i, j] = _idw(points, values, np.array([machs[i], deployments[j]]))
            logger.info("Filled %d missing drag-grid nodes by inverse-distance weighting",
                        len(missing))

        logger.info("Loaded airbrake drag surface %s: %d Mach x %d deployment (%s)",
                    csv_path, machs.size, deployments.size,
                    ExtrapolationType.parse(extrapolation).value)
        return cls(machs, deployments, grid, extrapolation)

    # ------------------------------------------------------------------
    def value(self, mach: float, deployment: float) -> float:
        """
        Drag (N) at ``(mach, deployment)``.

        Deployment is clamped to [0, 1]; non-finite inputs are read as 0.
        Never raises for out-of-range input.
        """
        mach = float(mach) if np.isfinite(mach) else 0.0
        dep = float(np.clip(deployment, 0.0, 1.0)) if np.isfinite(deployment) else 0.0

        if self.extrapolation is ExtrapolationType.ZERO:
            if (mach < self.machs[0] or mach > self.machs[-1]
                    or dep < self.deployments[0] or dep > self.deployments[-1]):
                return 0.0
        elif self.extrapolation is ExtrapolationType.CONSTANT:
            mach = float(np.clip(mach, self.machs[0], self.machs[-1]))
            dep = float(np.clip(dep, self.deployments[0], self.deployments[-1]))

        result = float(self._interp([[mach, dep]])[0])
        return result if np.isfinite(result) else 0.0

    def __repr__(self) -> str:
        return (
            f"DragSurface(mach=[{self.machs[0]:.2f}, {self.machs[-1]:.2f}], "
            f"deployment=[{self.deployments[0]:.2f}, {self.deployments[-1]:.2f}], "
            f"extrapolation={self.extrapolation.value})"
        )


# ============================================================================
#  AIRBRAKE AERODYNAMICS
# ============================================================================

class AirbrakeAerodynamics:
    """
    Airbrake drag force from flight state.

    Uses the tabulated surface when one is loaded.  Without a surface,
    ``fallback_cd_area`` (Cd * A, m^2) gives a simple model linear in
    deployment:

        D = q * CdA * deployment

    with q the compressibility-aware dynamic pressure.

    Parameters
    ----------
    surface : DragSurface, optional
    atmosphere : StandardAtmosphere, optional
    fallback_cd_area : float
        Cd * A used when no surface is loaded; 0 disables the fallback.
    """

    def __init__(self, surface: Optional[DragSurface] = None,
                 atmosphere: Optional[StandardAtmosphere] = None,
                 fallback_cd_area: float = 0.0):
        self.surface = surface
        self.atmosphere = atmosphere or StandardAtmosphere()
        self.fallback_cd_area = max(0.0, float(fallback_cd_area))
        if surface is None and self.fallback_cd_area <= 0.0:
            logger.warning("No airbrake drag surface loaded; airbrake drag will be 0 N")

    @property
    def is_ready(self) -> bool:
        return self.surface is not None

    def drag_force(self, deployment: float, speed: float, altitude: float) -> float:
        """Airbrake drag magnitude (N); 0 for non-positive or non-finite speed."""
        if not np.isfinite(speed) or speed <= 0.0:
            return 0.0
        if not np.isfinite(altitude):
            altitude = 0.0
        dep = float(np.clip(deployment, 0.0, 1.0)) if np.isfinite(deployment) else 0.0

        if self.surface is not None:
            mach = self.atmosphere.mach_number(speed, altitude)
            return self.surface.value(mach, dep)
        if self.fallback_cd_area > 0.0:
            q = self.atmosphere.dynamic_pressure(speed, altitude)
            return q * self.fallback_cd_area * dep
        return 0.0

"""
===============================================================================
AIRBRAKE GNC - Flight Plots
===============================================================================
Post-flight plots from CoastSimulation telemetry:

  1. Altitude with strict / best-effort / ballistic apogee predictions and
     the target
  2. Airbrake setpoint, actual deployment and Mach number
  3. Fitted decay parameters A, B with their 1-sigma bands

Figures are written to disk with the non-interactive Agg backend.
===============================================================================
"""

import logging
import os
from typing import List

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd

logger = logging.getLogger(__name__)

plt.rcParams.update({
    'font.size': 11,
    'axes.labelsize': 12,
    'axes.titlesize': 13,
    'legend.fontsize': 9,
    'figure.dpi': 120,
    'savefig.dpi': 150,
    'lines.linewidth': 1.5,
    'axes.grid': True,
    'grid.alpha': 0.3,
    'axes.spines.top': False,
    'axes.spines.right': False,
})

COLORS = {
    'altitude': '#2c3e50',
    'strict': '#27ae60',
    'best_effort': '#f39c12',
    'ballistic': '#95a5a6',
    'target': '#e74c3c',
    'setpoint': '#9b59b6',
    'deployment': '#3498db',
    'mach': '#1abc9c',
}


def plot_apogee_prediction(df: pd.DataFrame, target_apogee_m: float, filepath: str) -> str:
    """Altitude and apogee predictions over time."""
    fig, ax = plt.subplots(figsize=(11, 6))
    t = df.index.to_numpy()

    ax.plot(t, df['altitude_m'], color=COLORS['altitude'], label='Altitude')
    ax.plot(t, df['apogee_ballistic'], color=COLORS['ballistic'], linestyle=':',
            label='Ballistic bound')
    ax.plot(t, df['apogee_best_effort'], color=COLORS['best_effort'], linestyle='--',
            label='Best-effort apogee')
    ax.plot(t, df['apogee_strict'], color=COLORS['strict'], label='Strict apogee')
    ax.axhline(target_apogee_m, color=COLORS['target'], linestyle='-.', label='Target')

    ax.set_xlabel('Time [s]')
    ax.set_ylabel('Altitude [m]')
    ax.set_title('Apogee Prediction')
    ax.legend(loc='lower right')
    fig.tight_layout()
    fig.savefig(filepath)
    plt.close(fig)
    return filepath


def plot_airbrake_deployment(df: pd.DataFrame, max_mach: float, filepath: str) -> str:
    """Setpoint, actual deployment and Mach (twin axis)."""
    fig, ax = plt.subplots(figsize=(11, 5))
    t = df.index.to_numpy()

    ax.step(t, df['setpoint'], where='post', color=COLORS['setpoint'], label='Setpoint')
    ax.plot(t, df['deployment'], color=COLORS['deployment'], label='Deployment')
    ax.set_ylim(-0.05, 1.05)
    ax.set_xlabel('Time [s]')
    ax.set_ylabel('Deployment fraction')

    ax2 = ax.twinx()
    ax2.plot(t, df['mach'], color=COLORS['mach'], alpha=0.6, label='Mach')
    ax2.axhline(max_mach, color=COLORS['mach'], linestyle=':', alpha=0.6)
    ax2.set_ylabel('Mach')
    ax2.grid(False)

    lines = ax.get_lines() + ax2.get_lines()[:1]
    ax.legend(lines, [ln.get_label() for ln in lines], loc='upper right')
    ax.set_title('Airbrake Deployment')
    fig.tight_layout()
    fig.savefig(filepath)
    plt.close(fig)
    return filepath


def plot_fit_parameters(df: pd.DataFrame, filepath: str) -> str:
    """Fitted A and B with 1-sigma envelopes."""
    coast = df[df['fit_a'].notna()]
    fig, (ax_a, ax_b) = plt.subplots(2, 1, figsize=(10, 7), sharex=True)
    if not coast.empty:
        t = coast.index.to_numpy()
        a = coast['fit_a'].to_numpy(dtype=float)
        sa = coast['sigma_a'].to_numpy(dtype=float)
        b = coast['fit_b'].to_numpy(dtype=float)
        sb = coast['sigma_b'].to_numpy(dtype=float)
        ax_a.plot(t, a, color=COLORS['altitude'])
        ax_a.fill_between(t, a - sa, a + sa, color=COLORS['altitude'], alpha=0.2)
        ax_b.plot(t, b, color=COLORS['deployment'])
        ax_b.fill_between(t, b - sb, b + sb, color=COLORS['deployment'], alpha=0.2)

    ax_a.set_ylabel('A [m/s^2]')
    ax_a.set_title('Deceleration Fit  a(t) = A (1 - B t)^4')
    ax_b.set_ylabel('B [1/s]')
    ax_b.set_xlabel('Time [s]')
    fig.tight_layout()
    fig.savefig(filepath)
    plt.close(fig)
    return filepath


def generate_flight_plots(df: pd.DataFrame, target_apogee_m: float,
                          max_mach: float, output_dir: str) -> List[str]:
    """Write every flight plot into ``output_dir``; returns the file paths."""
    if df.empty:
        logger.warning("No telemetry to plot")
        return []
    os.makedirs(output_dir, exist_ok=True)
    paths = [
        plot_apogee_prediction(df, target_apogee_m,
                               os.path.join(output_dir, 'apogee_prediction.png')),
        plot_airbrake_deployment(df, max_mach,
                                 os.path.join(output_dir, 'airbrake_deployment.png')),
        plot_fit_parameters(df, os.path.join(output_dir, 'fit_parameters.png')),
    ]
    for p in paths:
        logger.info("Saved plot: %s", p)
    return paths

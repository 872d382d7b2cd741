"""
Visualization Engine
====================
Dark-themed plots for trajectory and wind analysis:
  1. Trajectory (drop, windage and speed vs downrange)
  2. G1 / G7 retardation curves
  3. Wind field quiver map (top view)
  4. Zeroing convergence
"""

import os
from typing import Dict, Optional, Sequence

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from .drag_model import DragFunction, retardation
from .trajectory import Trajectory
from .wind import WindField
from .simulator import ZeroingResult


# ── Style Configuration ───────────────────────────────────────────────────
STYLE = {
    'bg_color': '#0a0a0a',
    'text_color': '#e0e0e0',
    'grid_color': '#333333',
    'accent_colors': ['#00d4ff', '#ff6b35', '#00e676', '#ffeb3b',
                      '#e040fb', '#ff5252'],
    'font_family': 'monospace',
}

LEGEND_STYLE = dict(facecolor='#1a1a1a', edgecolor='#444',
                    labelcolor=STYLE['text_color'])


def _apply_dark_style(fig, axes):
    """Apply consistent dark theme to figure and axes."""
    fig.patch.set_facecolor(STYLE['bg_color'])
    if not isinstance(axes, np.ndarray):
        axes = [axes]
    else:
        axes = axes.flatten()

    for ax in axes:
        ax.set_facecolor(STYLE['bg_color'])
        ax.tick_params(colors=STYLE['text_color'])
        ax.xaxis.label.set_color(STYLE['text_color'])
        ax.yaxis.label.set_color(STYLE['text_color'])
        ax.title.set_color(STYLE['text_color'])
        ax.grid(True, color=STYLE['grid_color'], alpha=0.4, linewidth=0.5)
        for spine in ax.spines.values():
            spine.set_color(STYLE['grid_color'])


def _finish(fig, save_path: Optional[str], show: bool = False) -> plt.Figure:
    plt.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight',
                    facecolor=STYLE['bg_color'])
    if show:
        plt.show()
    return fig


def ensure_output_dir(path: str = 'outputs'):
    os.makedirs(path, exist_ok=True)
    return path


# ══════════════════════════════════════════════════════════════════════════
#  1. Trajectory Plot
# ══════════════════════════════════════════════════════════════════════════

def plot_trajectory(trajectories: Dict[str, Trajectory], save_path: str = None,
                    show: bool = False) -> plt.Figure:
    """Drop, windage and speed vs downrange for one or more labelled shots."""
    fig, axes = plt.subplots(3, 1, figsize=(12, 10), sharex=True)
    _apply_dark_style(fig, axes)

    for i, (label, traj) in enumerate(trajectories.items()):
        color = STYLE['accent_colors'][i % len(STYLE['accent_colors'])]
        data = traj.as_arrays()
        axes[0].plot(data['downrange'], data['height'] * 100, color=color,
                     linewidth=2, label=label)
        axes[1].plot(data['downrange'], data['crossrange'] * 100, color=color,
                     linewidth=2)
        axes[2].plot(data['downrange'], data['speed'], color=color, linewidth=2)

        # Mark impact
        axes[0].plot(data['downrange'][-1], data['height'][-1] * 100, 'x',
                     color='#ff5252', markersize=10, markeredgewidth=2, zorder=5)

    axes[0].axhline(y=0, color='#555', linestyle='--', alpha=0.5)
    axes[1].axhline(y=0, color='#555', linestyle='--', alpha=0.5)
    axes[0].set_ylabel('Height (cm)', fontsize=12)
    axes[1].set_ylabel('Windage (cm)', fontsize=12)
    axes[2].set_ylabel('Speed (m/s)', fontsize=12)
    axes[2].set_xlabel('Downrange (m)', fontsize=12)
    axes[0].set_title('Trajectory — Drop, Windage and Speed',
                      fontsize=13, fontweight='bold')
    axes[0].legend(loc='lower left', fontsize=10, **LEGEND_STYLE)
    axes[2].set_xlim(left=0)

    return _finish(fig, save_path, show)


# ══════════════════════════════════════════════════════════════════════════
#  2. Drag Curves
# ══════════════════════════════════════════════════════════════════════════

def plot_drag_curves(save_path: str = None, bc: float = 1.0) -> plt.Figure:
    """Retardation vs speed for the G1 and G7 curves at standard density."""
    fig, ax = plt.subplots(figsize=(12, 6))
    _apply_dark_style(fig, ax)

    speeds = np.linspace(50.0, 1400.0, 500)
    for fn, color in zip(DragFunction, STYLE['accent_colors']):
        r = [retardation(v, fn, 1.0, bc) for v in speeds]
        ax.plot(speeds, r, color=color, linewidth=2.5, label=fn.value)

    # Speed of sound at sea level
    ax.axvline(x=340.3, color='#ffeb3b', linestyle=':', alpha=0.6,
               label='Mach 1 (sea level)')

    ax.set_xlabel('Air-relative speed (m/s)', fontsize=12)
    ax.set_ylabel('Retardation (m/s²)', fontsize=12)
    ax.set_title(f'Reference Drag Functions (BC = {bc:g})',
                 fontsize=13, fontweight='bold')
    ax.legend(fontsize=11, **LEGEND_STYLE)
    ax.set_ylim(bottom=0)

    return _finish(fig, save_path)


# ══════════════════════════════════════════════════════════════════════════
#  3. Wind Field Map
# ══════════════════════════════════════════════════════════════════════════

def plot_wind_field(field: WindField, extent: Sequence[float] = (-50.0, 50.0, 0.0, 1000.0),
                    resolution: int = 25, height: float = 1.0,
                    save_path: str = None) -> plt.Figure:
    """
    Top-view quiver map of the horizontal wind at ``height``.

    ``extent`` is (crossrange min, crossrange max, downrange min, downrange max).
    """
    fig, ax = plt.subplots(figsize=(8, 10))
    _apply_dark_style(fig, ax)

    cr_min, cr_max, dr_min, dr_max = extent
    cross = np.linspace(cr_min, cr_max, resolution)
    down = np.linspace(dr_min, dr_max, resolution)
    u = np.zeros((resolution, resolution))
    v = np.zeros((resolution, resolution))
    for i, d in enumerate(down):
        for j, c in enumerate(cross):
            w = field.sample(c, height, -d)
            u[i, j] = w[0]
            v[i, j] = -w[2]

    speed = np.hypot(u, v)
    q = ax.quiver(cross, down, u, v, speed, cmap='plasma', scale_units='xy',
                  angles='xy', width=0.004)
    cbar = fig.colorbar(q, ax=ax)
    cbar.set_label('Wind speed (m/s)', color=STYLE['text_color'])
    cbar.ax.yaxis.set_tick_params(color=STYLE['text_color'])
    plt.setp(cbar.ax.get_yticklabels(), color=STYLE['text_color'])

    ax.set_xlabel('Crossrange (m)', fontsize=12)
    ax.set_ylabel('Downrange (m)', fontsize=12)
    ax.set_title(f'Wind Field at t = {field.current_time:.1f} s '
                 f'({field.num_components} components)',
                 fontsize=13, fontweight='bold')

    return _finish(fig, save_path)


# ══════════════════════════════════════════════════════════════════════════
#  4. Zeroing Convergence
# ══════════════════════════════════════════════════════════════════════════

def plot_zero_convergence(result: ZeroingResult, save_path: str = None) -> plt.Figure:
    """Miss distance and launch angles per zeroing iteration."""
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 5))
    _apply_dark_style(fig, np.array([ax1, ax2]))

    history = np.array(result.history).reshape(-1, 3)
    iterations = np.arange(1, len(history) + 1)

    ax1.semilogy(iterations, np.maximum(history[:, 2], 1e-9) * 1000, 'o-',
                 color=STYLE['accent_colors'][0], linewidth=2)
    ax1.set_xlabel('Iteration')
    ax1.set_ylabel('Miss distance (mm)')
    ax1.set_title('Convergence', fontweight='bold')

    ax2.plot(iterations, np.degrees(history[:, 0]) * 60, 'o-',
             color=STYLE['accent_colors'][1], linewidth=2, label='Elevation')
    ax2.plot(iterations, np.degrees(history[:, 1]) * 60, 's-',
             color=STYLE['accent_colors'][2], linewidth=2, label='Azimuth')
    ax2.set_xlabel('Iteration')
    ax2.set_ylabel('Angle (MOA)')
    ax2.set_title('Launch Angles', fontweight='bold')
    ax2.legend(fontsize=10, **LEGEND_STYLE)

    status = 'converged' if result.converged else 'NOT converged'
    fig.suptitle(f'Zeroing — {status} in {result.iterations} iteration(s)',
                 fontsize=14, fontweight='bold', color=STYLE['text_color'], y=1.02)

    return _finish(fig, save_path)

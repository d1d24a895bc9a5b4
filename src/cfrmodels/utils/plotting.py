"""
===========================================================
plotting.py
Author: Veronica Scerra
Last Updated: 2026-03-16
===========================================================
Figures for the delay-adjusted CFR analysis.

- plot_delay_distributions(): fitted onset-to-death densities
  with mean (dashed) and median (dotted) markers
- plot_snapshot_counts(): bar charts of onsets and deaths for
  one snapshot, weekly date ticks
- plot_cfr_estimates(): CFR point estimates with confidence
  intervals over report dates
"""
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Dict, Optional, Tuple
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from ..delay import DelayDistribution
from ..snapshots import OutbreakSnapshot

# RColorBrewer "Set1": red, blue, green
COLORS = sns.color_palette("Set1", 3)


def _finish(fig: Figure, save_path: Optional[str], show: bool) -> None:
    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Figure saved to {save_path}")
    if show:
        plt.show()


def plot_delay_distributions(delays: Dict[str, DelayDistribution],
                             x_max: float = 40.0,
                             ax: Optional[Axes] = None,
                             save_path: Optional[str] = None,
                             show: bool = True) -> Axes:
    """
    Plot gamma densities of the onset-to-death delay.

    Parameters
    ----------
    delays : dict
        Label -> fitted DelayDistribution
    x_max : float
        Right end of the x axis (days)
    ax : matplotlib.axes.Axes, optional
        Axes to plot on. If None, creates new figure
    save_path : str, optional
        If provided, save figure to this path
    show : bool
        Whether to display the plot immediately

    Returns
    -------
    ax : matplotlib.axes.Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4.5))
    else:
        fig = ax.figure

    x = np.linspace(0, x_max, 401)
    palette = [COLORS[1], COLORS[0], COLORS[2]]
    for i, (label, delay) in enumerate(delays.items()):
        color = palette[i % len(palette)]
        ax.plot(x, delay.pdf(x), color=color, linewidth=2,
                label=f'{label} (mean {delay.mean:.1f} d, median {delay.median:.1f} d)')
        ax.vlines(delay.mean, 0, delay.pdf(delay.mean), color=color, linestyle='--')
        ax.vlines(delay.median, 0, delay.pdf(delay.median), color=color, linestyle=':')

    ax.set_xlim(0, x_max)
    ax.set_ylim(bottom=0)
    ax.set_xlabel('Time from onset to death (days)', fontsize=12)
    ax.set_ylabel('Probability density', fontsize=12)
    ax.spines[['top', 'right']].set_visible(False)
    ax.legend(fontsize=9, frameon=False)

    _finish(fig, save_path, show)
    return ax


def _weekly_ticks(ax: Axes, snapshot: OutbreakSnapshot) -> None:
    ticks = np.arange(0, snapshot.n_days + 7, 7)
    ax.set_xticks(ticks)
    if snapshot.begin_date is not None:
        labels = pd.Timestamp(snapshot.begin_date) + pd.to_timedelta(ticks, unit='D')
        ax.set_xticklabels([d.strftime('%Y-%m-%d') for d in labels], rotation=45, ha='right')


def plot_snapshot_counts(snapshot: OutbreakSnapshot,
                         figsize: Tuple[float, float] = (12, 4.5),
                         save_path: Optional[str] = None,
                         show: bool = True) -> Figure:
    """Two panels: cases by onset date, and deaths (stacked by source when available)"""
    fig, (ax_cases, ax_deaths) = plt.subplots(1, 2, figsize=figsize)
    days = np.arange(snapshot.n_days)

    ax_cases.bar(days, snapshot.cases, color=COLORS[1], width=0.9)
    ax_cases.set_xlabel('Data: WHO Situation Reports')
    ax_cases.set_ylabel('Cases')
    ax_cases.set_title('Symptom onset in cases', fontsize=13)

    breakdown = snapshot.death_breakdown or {'deaths': snapshot.deaths}
    bottom = np.zeros(snapshot.n_days)
    death_colors = [COLORS[0], COLORS[2]]
    for i, (label, values) in enumerate(breakdown.items()):
        ax_deaths.bar(days, values, bottom=bottom, width=0.9,
                      color=death_colors[i % len(death_colors)], label=label)
        bottom = bottom + values
    ax_deaths.set_ylim(0, max(float(snapshot.cases.max()), float(bottom.max()), 1.0))
    ax_deaths.set_xlabel('Data: WHO, ECDC, Media')
    ax_deaths.set_ylabel('Deaths')
    ax_deaths.set_title('Deaths among cases', fontsize=13)
    if len(breakdown) > 1:
        ax_deaths.legend(frameon=False)

    for ax in (ax_cases, ax_deaths):
        _weekly_ticks(ax, snapshot)
        ax.spines[['top', 'right']].set_visible(False)

    _finish(fig, save_path, show)
    return fig


def plot_cfr_estimates(estimates: pd.DataFrame,
                       ylim: Tuple[float, float] = (0.0, 0.2),
                       ax: Optional[Axes] = None,
                       save_path: Optional[str] = None,
                       show: bool = True) -> Axes:
    """
    Point estimates and confidence intervals of the CFR by report date.
    Expects the columns 'date', 'mle', 'lower', 'upper'; failed rows (NaN) are skipped.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4.5))
    else:
        fig = ax.figure

    df = estimates.dropna(subset=['mle', 'lower', 'upper'])
    if df.empty:
        _finish(fig, save_path, show)
        return ax
    dates = pd.to_datetime(df['date'])
    yerr = np.vstack([df['mle'] - df['lower'], df['upper'] - df['mle']])
    ax.errorbar(dates, df['mle'], yerr=yerr, fmt='o', color=COLORS[1],
                ecolor=COLORS[1], capsize=3, markersize=6)

    ax.set_ylim(*ylim)
    ax.set_ylabel('Case fatality ratio', fontsize=12)
    ax.set_xticks(dates)
    ax.set_xticklabels([f'{d.day}/{d.month}' for d in dates])
    ax.spines[['top', 'right']].set_visible(False)

    _finish(fig, save_path, show)
    return ax

# -*- coding: utf-8 -*-
"""
netmanip.viz
==================================================

Figures for manipulation statistics and label-wise test results.

Both functions consume only the plain tables produced by
:mod:`netmanip.inference` and :mod:`netmanip.export`.
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib import patches
from typing import Dict, Optional, Tuple

from .core import SampleStatisticSet
from .export import to_table


def _setup_style():
    plt.rcParams.update({
        "font.family": "sans-serif",
        "font.size": 10,
        "axes.titlesize": 12,
        "axes.labelsize": 10,
        "figure.dpi": 150,
        "savefig.dpi": 300,
        "savefig.bbox": "tight",
    })


_TEST_TITLES = {
    "diff": "Derived vs original",
    "group": "Group comparison",
    "group_diff": "Group × manipulation",
}


# =============================================================================
# TEST RESULTS
# =============================================================================

def plot_test_results(
    result: Dict,
    figsize: Tuple[int, int] = (10, 4),
    save_path: Optional[str] = None,
) -> plt.Figure:
    """
    Test statistic per label, coloured by significance.

    Parameters
    ----------
    result : dict
        Output of diff_test, group_test or group_diff_test.
    figsize : tuple
    save_path : str, optional
    """
    _setup_style()
    fig, ax = plt.subplots(figsize=figsize)

    labels = result["label"]
    stat = np.nan_to_num(result["statistic"], nan=0.0, posinf=0.0, neginf=0.0)
    sig = result["significant"]
    x = np.arange(len(labels))

    bar_colors = ["#e74c3c" if s else "#bdc3c7" for s in sig]
    ax.bar(x, stat, color=bar_colors)
    ax.axhline(0, color="gray", linewidth=0.8)
    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=90 if len(labels) > 20 else 0)
    ax.set_xlabel("Manipulation label")
    ax.set_ylabel("t" if result["method"] == "parametric" else "Rank statistic")

    alpha = result.get("alpha", 0.05)
    legend_elements = [
        patches.Patch(facecolor="#e74c3c", label=f"p < {alpha:g}"),
        patches.Patch(facecolor="#bdc3c7", label=f"p ≥ {alpha:g}"),
    ]
    ax.legend(handles=legend_elements, fontsize=9)

    title = _TEST_TITLES.get(result.get("test"), "Label-wise test")
    if "groups" in result:
        g1, g2 = result["groups"]
        title += f"  |  {g1} vs {g2}"
    if result.get("correction", "none") != "none":
        title += f"  ·  {result['correction']}-corrected"
    ax.set_title(title, fontweight="bold")
    ax.grid(True, axis="y", alpha=0.3)

    plt.tight_layout()
    if save_path:
        fig.savefig(save_path)
    return fig


# =============================================================================
# SAMPLE STATISTICS
# =============================================================================

def plot_sample_statistics(
    sample_statistics: SampleStatisticSet,
    grouping_variable: Optional[str] = None,
    figsize: Tuple[int, int] = (10, 4),
    seed: int = 42,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """
    Derived − original differences per label, one dot per subject.

    Parameters
    ----------
    sample_statistics : SampleStatisticSet
    grouping_variable : str, optional
        Sample variable used to colour subjects.
    figsize : tuple
    seed : int
        Seed for horizontal jitter.
    save_path : str, optional
    """
    _setup_style()
    rng = np.random.default_rng(seed)
    fig, ax = plt.subplots(figsize=figsize)

    rows = to_table(sample_statistics)
    labels = sample_statistics.labels
    position = {label: i for i, label in enumerate(labels)}

    if grouping_variable is not None:
        sample_statistics.sample_variable(grouping_variable)
        groups = []
        for r in rows:
            if r[grouping_variable] not in groups:
                groups.append(r[grouping_variable])
    else:
        groups = [None]

    palette = plt.get_cmap("tab10")
    width = 0.6 / len(groups)
    for gi, g in enumerate(groups):
        sel = [r for r in rows
               if g is None or r[grouping_variable] == g]
        if not sel:
            continue
        offset = (gi - (len(groups) - 1) / 2) * width
        xs = np.array([position[r["label"]] for r in sel], dtype=float)
        xs += offset + rng.uniform(-width / 3, width / 3, len(xs))
        ys = [r["difference"] for r in sel]
        ax.scatter(xs, ys, s=12, alpha=0.7, color=palette(gi % 10),
                   label=None if g is None else str(g))

    ax.axhline(0, color="gray", linestyle="--", linewidth=1)
    ax.set_xticks(np.arange(len(labels)))
    ax.set_xticklabels(labels, rotation=90 if len(labels) > 20 else 0)
    ax.set_xlabel("Manipulation label")
    ax.set_ylabel("Derived − original")
    ax.set_title("Manipulation effect per subject", fontweight="bold")
    if grouping_variable is not None:
        ax.legend(title=grouping_variable, fontsize=9)
    ax.grid(True, axis="y", alpha=0.3)

    plt.tight_layout()
    if save_path:
        fig.savefig(save_path)
    return fig

"""Plot mutation spectra."""

import warnings
from typing import List, Optional, Sequence, Tuple

import matplotlib.patches as patches
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure

from ..tl.occurrences import mut_type_occurrences
from ..utils.constants import (
    CANONICAL_96,
    COLORS7,
    CT_SPLIT_ORDER,
    MUTATION_COLORS,
    MUTATION_TYPES,
    TYPE_COLUMNS,
)
from ..utils.context import classify_mutation_type


def _spectrum_table(type_occurrences: pd.DataFrame, CT: bool) -> pd.DataFrame:
    if not isinstance(type_occurrences, pd.DataFrame):
        raise TypeError(f"type_occurrences must be pd.DataFrame, got {type(type_occurrences)}")

    # A 96 × samples matrix is reduced first
    if tuple(type_occurrences.index) == CANONICAL_96:
        type_occurrences = mut_type_occurrences(type_occurrences)

    needed = CT_SPLIT_ORDER if CT else MUTATION_TYPES
    missing = [col for col in needed if col not in type_occurrences.columns]
    if missing:
        raise ValueError(
            f"type_occurrences is missing columns {missing}. "
            f"Expected {'8' if CT else '6'} columns: {TYPE_COLUMNS if CT else MUTATION_TYPES}"
        )
    return type_occurrences[needed].astype(float)


def _summarise(table: pd.DataFrame, by: Sequence[str]) -> pd.DataFrame:
    """Per-group mean and standard deviation of relative contributions, in long form."""
    totals = table.sum(axis=1)
    relative = table.div(totals.replace(0, np.nan), axis=0).fillna(0)

    relative = relative.assign(by=list(by))
    long = relative.melt(id_vars="by", var_name="variable", value_name="value")
    long["nmuts"] = table.melt(var_name="variable", value_name="nmuts")["nmuts"].to_numpy()

    stats = (
        long.groupby(["by", "variable"], sort=False)["value"]
        .agg(mean="mean", stdev=lambda v: v.std(ddof=1))
        .reset_index()
    )
    group_info = long.groupby("by", sort=False).agg(
        total_individuals=("value", "sum"), total_mutations=("nmuts", "sum")
    )
    stats = stats.merge(group_info, left_on="by", right_index=True)
    stats["sub_type"] = stats["variable"].str.slice(0, 3)
    stats["error_pos"] = stats["mean"]
    return stats


def plot_spectrum(
    type_occurrences: pd.DataFrame,
    CT: bool = False,
    by: Optional[Sequence[str]] = None,
    colors: Optional[List[str]] = None,
    legend: bool = True,
    outpath: Optional[str] = None,
    figsize: Optional[Tuple[float, float]] = None,
    dpi: int = 300,
) -> Figure:
    """
    Plot the point mutation spectrum of groups of samples.

    Each sample's counts are converted to relative contributions, which are
    averaged per group. Bars show the group mean per mutation type, with
    error bars of one standard deviation.

    Parameters
    ----------
    type_occurrences : pd.DataFrame
        Type occurrences (samples × 6 or 8 types) from
        :func:`mutmatrix.tl.mut_type_occurrences`, or a 96 × samples count matrix
    CT : bool, default False
        Distinguish C>T at CpG sites from C>T at other sites (stacked bar).
        Requires the 'C>T at CpG' and 'C>T other' columns.
    by : sequence of str, optional
        Group label per sample. If None, all samples form one group 'all'.
    colors : list of str, optional
        Exactly 7 colors, in the order C>A, C>G, C>T (other), C>T at CpG,
        T>A, T>C, T>G. Defaults to ``mutmatrix.utils.COLORS7``.
    legend : bool, default True
        Show the legend
    outpath : str, optional
        Path to save figure
    figsize : tuple, optional
        Figure size. If None, scaled by the number of groups
    dpi : int, default 300
        DPI for saved figure

    Returns
    -------
    matplotlib.figure.Figure
        The spectrum plot, one panel per group

    Examples
    --------
    >>> import mutmatrix as mm
    >>> type_occurrences = mm.tl.mut_type_occurrences(mut_mat)
    >>> fig = mm.pl.plot_spectrum(type_occurrences)
    >>>
    >>> # Distinguish C>T at CpG, per tissue
    >>> tissue = ["colon", "colon", "liver", "liver"]
    >>> fig = mm.pl.plot_spectrum(type_occurrences, CT=True, by=tissue)
    >>>
    >>> # Custom colors
    >>> fig = mm.pl.plot_spectrum(type_occurrences, colors=["pink", "orange", "blue",
    ...                           "lightblue", "green", "red", "purple"])

    Notes
    -----
    The standard deviation of a single observation is undefined. If any group
    contains one sample, a warning is issued and no error bars are drawn.
    """
    if colors is None:
        colors = COLORS7
    if len(colors) != 7:
        raise ValueError(f"colors: supply a color list with length 7, got length {len(colors)}")

    table = _spectrum_table(type_occurrences, CT)

    grouped = by is not None
    if by is None:
        by = ["all"] * len(table)
    else:
        by = [str(label) for label in by]
        if len(by) != len(table):
            raise ValueError(f"by has {len(by)} labels but type_occurrences has {len(table)} samples")

    stats = _summarise(table, by)

    if CT:
        variables = CT_SPLIT_ORDER
        color_map = dict(zip(CT_SPLIT_ORDER, colors))
        # The CpG bar is stacked on top of "C>T other"
        for group in stats["by"].unique():
            in_group = stats["by"] == group
            other_mean = stats.loc[in_group & (stats["variable"] == "C>T other"), "mean"].iloc[0]
            stats.loc[in_group & (stats["variable"] == "C>T at CpG"), "error_pos"] += other_mean
    else:
        variables = MUTATION_TYPES
        color_map = dict(zip(MUTATION_TYPES, [colors[i] for i in (0, 1, 2, 4, 5, 6)]))

    draw_errorbars = not stats["stdev"].isna().any()
    if not draw_errorbars:
        warnings.warn(
            "No standard deviation error bars can be plotted, because there is only one sample "
            "per mutation spectrum",
            UserWarning,
            stacklevel=2,
        )

    groups = list(dict.fromkeys(by))
    if figsize is None:
        figsize = (4 * len(groups) + (2 if legend else 0), 4)

    fig, axes = plt.subplots(1, len(groups), figsize=figsize, sharey=True, squeeze=False)
    axes = axes[0]
    x_pos = {sub_type: idx for idx, sub_type in enumerate(MUTATION_TYPES)}

    for ax, group in zip(axes, groups):
        group_stats = stats[stats["by"] == group].set_index("variable")

        for variable in variables:
            row = group_stats.loc[variable]
            bottom = group_stats.loc["C>T other", "mean"] if variable == "C>T at CpG" else 0
            ax.bar(
                x_pos[row["sub_type"]], row["mean"], bottom=bottom, width=0.9,
                color=color_map[variable], label=variable, edgecolor="none",
            )
            if draw_errorbars:
                ax.errorbar(
                    x_pos[row["sub_type"]], row["error_pos"], yerr=row["stdev"],
                    fmt="none", ecolor="black", capsize=3, linewidth=1,
                )

        total = int(group_stats["total_mutations"].iloc[0])
        facet_title = f"No. mutations = {total:,}"
        ax.set_title(f"{group}\n{facet_title}" if grouped else facet_title, fontsize=11)
        ax.set_xticks([])
        ax.set_xlim(-0.6, len(MUTATION_TYPES) - 0.4)
        ax.grid(axis="y", color="#EBEBEB")
        ax.set_axisbelow(True)

    axes[0].set_ylabel("Relative contribution")

    if legend:
        handles = [patches.Patch(color=color_map[v], label=v) for v in variables]
        fig.legend(handles=handles, title="Point mutation type", loc="center right", frameon=False)
        fig.tight_layout(rect=(0, 0, 0.82, 1))
    else:
        fig.tight_layout()

    if outpath:
        fig.savefig(outpath, dpi=dpi, bbox_inches="tight")

    return fig


def plot_96_profile(
    mut_mat: pd.DataFrame,
    normalize: bool = True,
    title: Optional[str] = None,
    outpath: Optional[str] = None,
    figsize: Optional[Tuple[float, float]] = None,
    dpi: int = 300,
    ylim: Optional[Tuple[float, float]] = None,
) -> Figure:
    """
    Plot the 96-channel profile of every sample in a count matrix.

    Parameters
    ----------
    mut_mat : pd.DataFrame
        Count matrix (96 contexts × samples)
    normalize : bool, default True
        Plot relative contributions (each sample sums to 1) instead of counts
    title : str, optional
        Overall plot title
    outpath : str, optional
        Path to save figure
    figsize : tuple, optional
        Figure size. If None, auto-calculated based on number of samples
    dpi : int, default 300
        DPI for saved figure
    ylim : tuple of (float, float), optional
        Y-axis limits as (ymin, ymax). If None, automatically calculated from data.

    Returns
    -------
    matplotlib.figure.Figure
        One row per sample, one panel per substitution type
    """
    if not isinstance(mut_mat, pd.DataFrame):
        raise TypeError(f"mut_mat must be pd.DataFrame, got {type(mut_mat)}")
    if tuple(mut_mat.index) != CANONICAL_96:
        raise ValueError("mut_mat must be indexed by the 96 canonical contexts in canonical order")

    profiles = mut_mat.astype(float)
    if normalize:
        profiles = profiles.div(profiles.sum(axis=0).replace(0, np.nan), axis=1).fillna(0)

    n_samples = profiles.shape[1]
    if figsize is None:
        figsize = (24, 3 * n_samples)

    fig, axes = plt.subplots(n_samples, 6, figsize=figsize, sharey="row", squeeze=False)
    if title:
        fig.suptitle(title, fontsize=20, fontweight="bold")

    if ylim is not None:
        y_min, y_max = ylim
    else:
        y_min = 0
        y_max = max(profiles.to_numpy().max(), 1e-9) * 1.15

    ylabel = "Relative contribution" if normalize else "Mutation count"

    for row, sample_name in enumerate(profiles.columns):
        profile = profiles[sample_name]

        for col, mut_type in enumerate(MUTATION_TYPES):
            ax = axes[row, col]
            color = MUTATION_COLORS[mut_type]

            contexts = [c for c in profile.index if classify_mutation_type(c) == mut_type]
            x_pos = np.arange(len(contexts))
            ax.bar(x_pos, profile[contexts].to_numpy(), color=color, width=0.8, edgecolor="none")

            # Colored strip marking the substitution type
            rect = patches.Rectangle(
                (-0.5, y_max * 0.98), len(contexts), y_max * 0.02,
                linewidth=0, edgecolor="none", facecolor=color
            )
            ax.add_patch(rect)

            ax.set_xlim(-0.5, len(contexts) - 0.5)
            ax.set_ylim(y_min, y_max)
            ax.set_title(mut_type, fontweight="bold", fontsize=12)
            ax.set_xticks(x_pos)
            ax.set_xticklabels([c[0:3] for c in contexts], rotation=90, fontsize=6)
            ax.spines["top"].set_visible(False)
            ax.spines["right"].set_visible(False)

            if col == 0:
                ax.set_ylabel(ylabel, fontsize=10)
                ax.text(-0.15, 1.15, sample_name, transform=ax.transAxes,
                        fontsize=12, fontweight="bold", va="center", ha="right")

    fig.tight_layout()

    if outpath:
        fig.savefig(outpath, dpi=dpi, bbox_inches="tight")

    return fig

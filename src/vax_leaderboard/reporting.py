"""
Leaderboard outputs: CSV export and bar chart.

Both consume the ranked frame exactly as produced by rank_top_n and never
reorder it. Each is rendered to bytes in memory so callers can finish every
fallible step before touching the output directory.
"""

from io import BytesIO

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.ticker import PercentFormatter

from vax_leaderboard.schemas import RANKED_SCHEMA, validate_schema

BAR_COLOR = "#2b8cbe"


def export_frame(ranked: pd.DataFrame) -> pd.DataFrame:
    """Ranked frame restricted to the export columns, order preserved."""
    validate_schema(ranked, RANKED_SCHEMA, context="export")
    return ranked[RANKED_SCHEMA.column_names].reset_index(drop=True)


def render_csv(ranked: pd.DataFrame) -> bytes:
    """Leaderboard CSV as UTF-8 bytes: header row, one row per ranked record, no index."""
    text = export_frame(ranked).to_csv(index=False, lineterminator="\n")
    return text.encode("utf-8")


def render_chart(
    ranked: pd.DataFrame,
    title: str,
    metric_label: str,
    dpi: int = 150,
) -> bytes:
    """
    Render the leaderboard as a horizontal bar chart and return PNG bytes.

    Bars run top to bottom in ascending rank; the x axis is a percentage.
    """
    frame = export_frame(ranked)
    n_bars = len(frame)

    fig, ax = plt.subplots(figsize=(10, max(3.0, 0.5 * n_bars + 1.5)))
    try:
        if n_bars == 0:
            ax.text(0.5, 0.5, "No rankable entities", ha="center", va="center",
                    transform=ax.transAxes, fontsize=12)
            ax.set_yticks([])
        else:
            y_pos = range(n_bars)
            ratios = frame["uptake_ratio"].astype(float)
            bars = ax.barh(y_pos, ratios, color=BAR_COLOR, edgecolor="black", linewidth=0.5)

            for bar, rank, ratio in zip(bars, frame["rank"], ratios):
                ax.annotate(
                    f"#{int(rank)}  {ratio:.1%}",
                    xy=(bar.get_width(), bar.get_y() + bar.get_height() / 2),
                    xytext=(4, 0),
                    textcoords="offset points",
                    va="center",
                    fontsize=9,
                )

            ax.set_yticks(list(y_pos))
            ax.set_yticklabels(frame["entity_name"], fontsize=10)
            ax.invert_yaxis()
            ax.set_xlim(0, max(1.0, float(ratios.max()) * 1.15))

        ax.xaxis.set_major_formatter(PercentFormatter(xmax=1))
        ax.set_xlabel(metric_label, fontsize=11)
        ax.set_title(title, fontsize=12, fontweight="bold")

        fig.tight_layout()
        buffer = BytesIO()
        fig.savefig(buffer, format="png", dpi=dpi, bbox_inches="tight", facecolor="white")
    finally:
        plt.close(fig)

    return buffer.getvalue()

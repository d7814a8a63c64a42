"""
Visualization functions for the media store.

Provides bar charts of the aggregate views using plotly.
"""

import logging
from typing import Any, Dict, List, Optional

import plotly.graph_objects as go  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)


def _write(fig: go.Figure, output_file: Optional[str]) -> None:
    if output_file:
        fig.write_html(output_file)
        logger.info(f"Wrote chart to {output_file}")


def plot_timeline(
    timeline: List[Dict[str, Any]], output_file: Optional[str] = None
) -> Optional[go.Figure]:
    """
    Plot media counts per month.

    Args:
        timeline: Entries from analysis.get_timeline (newest first).
        output_file: Optional HTML file path to save the plot.

    Returns:
        The figure, or None if there is nothing to plot.
    """
    if not timeline:
        logger.info("Timeline is empty, nothing to plot")
        return None

    # Oldest month on the left
    entries = sorted(timeline, key=lambda e: e["month_key"] or "")
    fig = go.Figure(
        go.Bar(
            x=[e["label"] for e in entries],
            y=[e["count"] for e in entries],
            marker_color="#636efa",
        )
    )
    fig.update_layout(
        title="Media per month",
        xaxis_title="Month",
        yaxis_title="Media items",
        xaxis={"type": "category"},
    )
    _write(fig, output_file)
    return fig


def plot_media_by_sender(
    senders: List[Dict[str, Any]], output_file: Optional[str] = None
) -> Optional[go.Figure]:
    """
    Plot how many media items each sender shared.

    Args:
        senders: Entries from analysis.list_senders.
        output_file: Optional HTML file path to save the plot.

    Returns:
        The figure, or None if there is nothing to plot.
    """
    if not senders:
        logger.info("No senders, nothing to plot")
        return None

    ranked = sorted(senders, key=lambda s: s["media_count"])
    fig = go.Figure(
        go.Bar(
            x=[s["media_count"] for s in ranked],
            y=[s["name"] for s in ranked],
            orientation="h",
        )
    )
    fig.update_layout(
        title="Media by sender",
        xaxis_title="Media items",
        yaxis_title="Sender",
        height=max(300, 28 * len(ranked)),
    )
    _write(fig, output_file)
    return fig

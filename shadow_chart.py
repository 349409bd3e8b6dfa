"""Shadow length over time chart."""
from __future__ import annotations

import pathlib
from collections.abc import Iterable, Sequence
from datetime import date

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from measurements import ShadowMeasurement, series_labels_and_values
from solar_geometry import local_datetime, parse_clock_time, predicted_shadow_length

LINE_COLOR = "#60a5fa"
POINT_COLOR = "#93c5fd"
PREDICTED_COLOR = "#f59e0b"
TEXT_COLOR = "#e2e8f0"
GRID_COLOR = "#4a5568"
BACKGROUND = "#1a202c"


def predicted_series(
    stick_height: float,
    lat: float,
    lon: float,
    observed_on: date,
    utc_offset_hours: float,
    clock_times: Iterable[str],
) -> list[float | None]:
    """Expected shadow lengths at (lat, lon) for the given local clock times."""
    values: list[float | None] = []
    for label in clock_times:
        dt = local_datetime(observed_on, parse_clock_time(label), utc_offset_hours)
        length = predicted_shadow_length(stick_height, lat, lon, dt)
        values.append(None if length is None else round(length, 3))
    return values


def _style_axes(ax) -> None:
    ax.set_facecolor(BACKGROUND)
    for spine in ax.spines.values():
        spine.set_color(GRID_COLOR)
    ax.tick_params(colors=TEXT_COLOR)
    ax.grid(True, color=GRID_COLOR, linewidth=0.6)
    ax.set_xlabel("Time (hh:mm)", color=TEXT_COLOR, fontsize=14)
    ax.set_ylabel("Shadow Length (cm)", color=TEXT_COLOR, fontsize=14)


def plot_shadow_series(
    measurements: Iterable[ShadowMeasurement | dict],
    path: str | pathlib.Path | None = None,
    predicted: Sequence[float | None] | None = None,
    title: str | None = None,
) -> Figure:
    """
    Line chart of measured shadow length, ordered by clock time.

    ``predicted`` must line up with the sorted measurement labels; gaps
    (None) are left out of the overlay. The figure is returned open so the
    report can embed it; callers that only want the PNG should close it.
    """
    labels, values = series_labels_and_values(measurements)

    fig, ax = plt.subplots(figsize=(10, 5.5))
    fig.patch.set_facecolor(BACKGROUND)
    _style_axes(ax)

    positions = list(range(len(labels)))
    ax.plot(
        positions,
        values,
        color=LINE_COLOR,
        marker="o",
        markersize=6,
        markerfacecolor=POINT_COLOR,
        linewidth=2,
        label="Shadow Length (cm)",
    )

    if predicted is not None:
        if len(predicted) != len(labels):
            plt.close(fig)
            raise ValueError("predicted values must match the number of measurements")
        pairs = [(x, y) for x, y in zip(positions, predicted) if y is not None]
        if pairs:
            xs, ys = zip(*pairs)
            ax.plot(xs, ys, color=PREDICTED_COLOR, linestyle="--", linewidth=1.5, label="Predicted at estimate")

    ax.set_xticks(positions)
    ax.set_xticklabels(labels, rotation=45 if len(labels) > 8 else 0)
    ax.set_ylim(bottom=0)
    if title:
        ax.set_title(title, color=TEXT_COLOR)

    legend = ax.legend(facecolor=BACKGROUND, edgecolor=GRID_COLOR, fontsize=12)
    for text in legend.get_texts():
        text.set_color(TEXT_COLOR)
    fig.tight_layout()

    if path is not None:
        out_path = pathlib.Path(path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out_path, dpi=160, facecolor=fig.get_facecolor())
    return fig

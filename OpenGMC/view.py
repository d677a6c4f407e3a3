"""Impulse plot of a decoded CPS log."""

import os

import matplotlib

matplotlib.use("Agg")
import matplotlib.dates as mdates
import matplotlib.pyplot as plt

from .log import DecodedLog

Y_RANGE = (-0.5, 24)


def plot_log(log: DecodedLog, outfile: str = "/tmp/gmc.png", verbose: bool = False) -> str:
    """
    Render CPS against time as vertical impulses and save a 1280x720 PNG.

    The top-left corner carries the time range, the number of readings, total
    clicks and the highest CPS seen.
    """
    if len(log) == 0:
        raise ValueError("cannot plot an empty log")

    outdir = os.path.dirname(os.path.abspath(outfile))
    if outdir and not os.path.exists(outdir):
        os.makedirs(outdir, exist_ok=True)

    times = log.timestamps.astype(object)
    counts = log.counts

    fig, ax = plt.subplots(figsize=(12.8, 7.2), dpi=100)
    try:
        ax.vlines(times, 0, counts, linewidth=0.8, label="CPS (clicks per second)")
        ax.set_ylim(*Y_RANGE)
        ax.xaxis.set_major_formatter(mdates.DateFormatter("%H:%M"))
        ax.grid(True)
        ax.legend(loc="upper right")

        first, last = log.first.timestamp, log.last.timestamp
        labels = (
            first.strftime("from %Y-%m-%d %H:%M:%S"),
            last.strftime("to   %Y-%m-%d %H:%M:%S"),
            f"{len(log)} reads, {log.total_clicks} clicks, highest: {int(counts.max())}",
        )
        for k, text in enumerate(labels):
            ax.text(0.01, 0.97 - 0.03 * k, text, transform=ax.transAxes, va="top", family="monospace")

        fig.savefig(outfile)
    finally:
        plt.close(fig)

    if verbose:
        print(f"Wrote plot to {outfile}.")
    return outfile

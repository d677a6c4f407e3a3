"""Console statistics for a decoded log."""

from typing import Dict, List

import numpy as np

from .log import DecodedLog

HIGHEST_THRESHOLD = 6  # CPS at or above this is listed individually


def summarize(log: DecodedLog, highest_threshold: int = HIGHEST_THRESHOLD) -> Dict:
    """
    Summary of a non-empty log.

    Returns:
    --------
    dict with keys
        samples, from, to, max, total : scalars
        histogram : {cps value: (occurrences, percent)} for values that occur
        highest : [(timestamp, cps)] for readings >= highest_threshold
    """
    if len(log) == 0:
        raise ValueError("cannot summarize an empty log")

    counts = log.counts
    occurrences = np.bincount(counts, minlength=256)
    histogram = {
        int(value): (int(n), 100.0 * n / counts.size)
        for value, n in enumerate(occurrences)
        if n
    }
    highest = [(e.timestamp, e.count) for e in log if e.count >= highest_threshold]

    return {
        "samples": len(log),
        "from": log.first.timestamp,
        "to": log.last.timestamp,
        "max": int(counts.max()),
        "total": int(counts.sum()),
        "histogram": histogram,
        "highest": highest,
    }


def format_summary(summary: Dict) -> List[str]:
    lines = [
        f"!--samples: {summary['samples']}",
        f"!--from:    {summary['from']}",
        f"!--to:      {summary['to']}",
    ]
    for value, (n, percent) in summary["histogram"].items():
        lines.append(f"!--values:  {value}:\t{n}\t{percent:.1f}%")
    for ts, cps in summary["highest"]:
        lines.append(f"!--highest: {ts}: {cps}")
    lines.append(f"!--{summary['total']} total clicks")
    return lines

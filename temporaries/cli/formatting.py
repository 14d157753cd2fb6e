"""Output helpers for the temporaries command line."""

import json
from typing import Any, Dict, List, Optional, Sequence

import yaml

from temporaries.constants import (
    DAY_IN_SECONDS,
    HOUR_IN_SECONDS,
    MINUTE_IN_SECONDS,
    MONTH_IN_SECONDS,
    WEEK_IN_SECONDS,
    YEAR_IN_SECONDS,
)

# (upper bound, unit length, singular, plural)
_UNITS = (
    (HOUR_IN_SECONDS, MINUTE_IN_SECONDS, "min", "mins"),
    (DAY_IN_SECONDS, HOUR_IN_SECONDS, "hour", "hours"),
    (WEEK_IN_SECONDS, DAY_IN_SECONDS, "day", "days"),
    (MONTH_IN_SECONDS, WEEK_IN_SECONDS, "week", "weeks"),
    (YEAR_IN_SECONDS, MONTH_IN_SECONDS, "month", "months"),
    (None, YEAR_IN_SECONDS, "year", "years"),
)


def human_time_diff(start: int, end: int) -> str:
    """Difference between two timestamps as "5 mins", "1 hour", "2 weeks"...

    Rounds half up and never reports less than one unit.
    """
    diff = abs(end - start)
    for bound, unit, singular, plural in _UNITS:
        if bound is None or diff < bound:
            amount = max(1, int(diff / unit + 0.5))
            return f"{amount} {singular if amount == 1 else plural}"


def human_timeout(timeout: Optional[int], now: int) -> str:
    """Relative expiry of a temporary, e.g. "in 2 hours" or "5 mins ago"."""
    if timeout is None:
        return "No Timeout"
    if now > timeout:
        return f"{human_time_diff(timeout, now)} ago"
    return f"in {human_time_diff(now, timeout)}"


def format_scalar(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def format_value(value: Any, output_format: Optional[str] = None) -> str:
    """Render a single value for printing."""
    if output_format == "json":
        return json.dumps(value, default=str)
    if output_format == "yaml":
        return yaml.safe_dump(value, default_flow_style=False, allow_unicode=True).rstrip("\n")
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=4, default=str)
    return format_scalar(value)


def format_table(items: List[Dict[str, Any]], fields: Sequence[str]) -> str:
    """Render rows as an ASCII table with a header."""
    rows = [[format_scalar(item.get(f, "")) for f in fields] for item in items]
    widths = [
        max([len(f)] + [len(row[i]) for row in rows])
        for i, f in enumerate(fields)
    ]

    border = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    def line(cells):
        return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"

    out = [border, line(fields), border]
    out.extend(line(row) for row in rows)
    out.append(border)
    return "\n".join(out)

import random
import string
import time
from datetime import datetime
from typing import List, Literal, Optional


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of strings.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    # If no headers, take the first row as header and remove it from rows
    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [escape_cell(h) for h in headers]
    rows = [[escape_cell(c) for c in row] for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["c"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {
        "l": ":---",
        "c": ":---:",
        "r": "---:",
    }

    header_line = "| " + " | ".join(headers) + " |"
    align_line = "| " + " | ".join(align_map[a] for a in aligns) + " |"
    row_lines = ["| " + " | ".join(row) + " |" for row in rows]

    return "\n".join([header_line, align_line, *row_lines])


def escape_cell(val) -> str:
    """Stringify a table cell; pipes and newlines would break the row."""
    if val is None:
        return "-"
    return str(val).replace("|", "\\|").replace("\n", " ")


def format_currency(amount: Optional[float]) -> str:
    """Indian rupee formatting with lakh/crore digit grouping, e.g. ₹1,23,456.50"""
    if amount is None:
        return "-"
    sign = "-" if amount < 0 else ""
    whole, frac = f"{abs(amount):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}₹{whole}.{frac}"


def format_datetime(val: Optional[datetime], with_time: bool = True) -> str:
    if val is None:
        return "-"
    if val.tzinfo is not None:
        val = val.astimezone()
    return val.strftime("%d %b %Y, %H:%M" if with_time else "%d %b %Y")


def generate_tracking_number() -> str:
    """8 random upper-case alphanumerics plus the last 4 digits of the clock."""
    base = "".join(random.choices(string.ascii_uppercase + string.digits, k=8))
    return f"{base}{str(int(time.time() * 1000))[-4:]}"

import re
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
        rows: List of rows, each a list of cell values.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all left ('l'), which reads correctly for both
                Arabic and English cell text.

    Returns:
        str: Markdown formatted table, or "" when there are no rows.
    """
    if not rows:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [str(h) for h in headers]
    rows = [[_escape_cell(c) for c in row] for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["l"] * num_cols
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


def _escape_cell(value) -> str:
    # free-text addresses may contain pipes and newlines
    return str(value).replace("|", "\\|").replace("\n", " ")


def format_money(amount: float) -> str:
    return f"${amount:.2f}"


def digits_only(text: str) -> str:
    """Strip everything but ASCII digits: '(555) 010-2030' -> '5550102030'."""
    return re.sub(r"[^0-9]", "", text or "")


def normalize_country_code(code: str) -> str:
    """'1', '+1', ' 001 ' -> '+1'."""
    digits = digits_only(code).lstrip("0")
    return f"+{digits}" if digits else ""

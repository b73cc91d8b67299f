"""Rendering of access keys through user templates.

Templates use ``%`` placeholders::

    %index   1-based position in the store
    %name    key name
    %ip      host the key connects to
    %port    port the key connects to
    %%       literal percent sign

The braced form (``%{name}``) may be used when a placeholder is directly
followed by letters. Unknown placeholders are left as they are.
"""

from string import Template
from typing import Iterable, List, Sequence

from .validator import parse_endpoint

# Internal column delimiter for the default listing (ASCII unit separator).
COLUMN_DELIMITER = "\x1f"

DEFAULT_ROW_TEMPLATE = COLUMN_DELIMITER.join(("%index", "%name", "%ip"))
DEFAULT_TEMPLATE = "%name (%ip)"


class KeyTemplate(Template):
    """string.Template with '%' as delimiter.

    Substituted values are never re-parsed, so a key name containing '%'
    renders literally.
    """

    delimiter = "%"


def placeholders(key, position: int) -> dict:
    """Build the placeholder mapping for a key.

    Values that cannot be derived render as empty strings.
    """
    host, port = parse_endpoint(key.transport)
    return {
        "index": str(position) if position else "",
        "name": key.name or "",
        "ip": host or "",
        "port": port or "",
    }


def render(template: str, key, position: int = 0) -> str:
    """Render a key through a template.

    Args:
        template: Template string with % placeholders
        key: AccessKey to render
        position: 1-based store position, 0 if unknown

    Returns:
        Rendered string
    """
    return KeyTemplate(template).safe_substitute(placeholders(key, position))


def format_table(rows: Iterable[str], delimiter: str = COLUMN_DELIMITER) -> List[str]:
    """Column-align delimiter separated rows."""
    cells: List[Sequence[str]] = [row.split(delimiter) for row in rows]
    if not cells:
        return []

    columns = max(len(row) for row in cells)
    widths = [0] * columns
    for row in cells:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    lines = []
    for row in cells:
        padded = [cell.ljust(widths[i]) for i, cell in enumerate(row)]
        lines.append("  ".join(padded).rstrip())
    return lines

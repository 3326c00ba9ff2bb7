"""Column selection and reordering.

This module builds the final column set of a record set. Unknown
columns are an error rather than a silently empty column.
"""

from __future__ import annotations

from typing import Sequence

from core.errors import ProjectionError
from core.types import RecordSet


def project_columns(record_set: RecordSet, column_order: Sequence[str]) -> RecordSet:
    """Select columns in the requested order.

    Args:
        record_set: Input record set.
        column_order: Existing column names in output order.

    Returns:
        New record set with only the requested columns.

    Raises:
        ProjectionError: If a column is unknown or requested twice.
    """
    unknown = [name for name in column_order if not record_set.has_column(name)]
    if unknown:
        available = ", ".join(record_set.column_names)
        raise ProjectionError(
            f"Cannot project unknown column(s) {', '.join(unknown)}. "
            f"Available columns: {available}."
        )
    duplicates = sorted({name for name in column_order if list(column_order).count(name) > 1})
    if duplicates:
        raise ProjectionError(
            f"Projection lists column(s) {', '.join(duplicates)} more than once."
        )
    columns_by_name = {column.name: column for column in record_set.columns}
    columns = tuple(columns_by_name[name] for name in column_order)
    rows = tuple({name: row[name] for name in column_order} for row in record_set.rows)
    return RecordSet(columns=columns, rows=rows)

"""Result cursors returned by ``Query.exec``."""

from typing import Any, Dict, List, Optional

from sqlalchemy.engine import CursorResult


class Result:
    """Forward-only view over one executed statement.

    Rows come back as plain dictionaries keyed by column or alias name.
    Neither ``fetch`` nor ``fetch_all`` can be restarted; execute the query
    again to read the rows a second time.

    Args:
        cursor_result: SQLAlchemy result of the statement, or ``None`` when the
            statement ran on a raw DB-API cursor
        insert_id: Primary key captured by the dialect's insert strategy
        rowcount: Affected row count when ``cursor_result`` is ``None``
    """

    def __init__(
        self,
        cursor_result: Optional[CursorResult] = None,
        insert_id: Any = None,
        rowcount: Optional[int] = None,
    ):
        self._result = cursor_result
        self._insert_id = insert_id
        self._rowcount = rowcount
        self._rows = None

        if cursor_result is not None and cursor_result.returns_rows:
            self._rows = cursor_result.mappings()
        elif cursor_result is not None and rowcount is None:
            self._rowcount = cursor_result.rowcount

    @property
    def returns_rows(self) -> bool:
        return self._rows is not None

    def fetch(self) -> Optional[Dict[str, Any]]:
        """Next row, or ``None`` once the cursor is exhausted."""
        if self._rows is None:
            return None
        row = self._rows.fetchone()
        return dict(row) if row is not None else None

    def fetch_all(self) -> List[Dict[str, Any]]:
        """All remaining rows."""
        if self._rows is None:
            return []
        return [dict(row) for row in self._rows.all()]

    def count(self) -> int:
        """Number of rows returned, or affected for write statements.

        Reading the count of a row-returning result consumes its rows.
        """
        if self._rows is not None:
            return len(self.fetch_all())
        return self._rowcount if self._rowcount is not None and self._rowcount >= 0 else 0

    def insert_id(self) -> Any:
        return self._insert_id


class CountingResult(Result):
    """Result for drivers without a usable native row count."""

    def count(self) -> int:
        return len(self.fetch_all())

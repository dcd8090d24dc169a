"""
Result materialization for CQLStore.

The ResultPager turns a ResultHandle (one driver page plus its cursor) into
host-level results:

- RowSequence: every row of every page, drained eagerly
- PagedResultSet: pages fetched one at a time, strictly in order
- True: a write (or non-row statement) that completed
- None: a read that matched no rows

Each cell goes through TypeCoercer.from_storage unless conversion is
switched off, in which case rows carry the driver's own values.
"""

from typing import Any, Iterator, List, Mapping, Optional

import pandas as pd

from .config import get_logger
from .exceptions import WriteNotAppliedError
from .statement import StatementKind

# Column the store adds to results of conditional writes
APPLIED_COLUMN = "[applied]"

_WRITE_KINDS = (StatementKind.insert, StatementKind.update, StatementKind.delete)


class Row(dict):
    """Ordered mapping from column name to a host value."""

    def __repr__(self):
        return f"Row({dict.__repr__(self)})"


class RowSequence(list):
    """
    Rows of a result, in the order the store returned them.

    Example:
        >>> rows = store.where('age', [18, 30], 'BETWEEN').get('accounts')
        >>> rows.first()['name']
        'Ann'
        >>> rows.to_df().columns.tolist()
        ['id', 'name', 'age']
    """

    def __init__(self, rows=(), column_names: Optional[List[str]] = None):
        super().__init__(rows)
        self.column_names = list(column_names or [])

    def first(self) -> Optional[Row]:
        return self[0] if self else None

    def to_df(self) -> pd.DataFrame:
        """Convert the rows to a pandas DataFrame."""
        columns = self.column_names or (list(self[0].keys()) if self else [])
        return pd.DataFrame([dict(row) for row in self], columns=columns)


class ResultPage(RowSequence):
    """One page of a paged result."""

    def __init__(self, rows=(), column_names: Optional[List[str]] = None, index: int = 0, is_last: bool = True):
        super().__init__(rows, column_names)
        self.index = index
        self.is_last = is_last

    def __repr__(self):
        return f"ResultPage(index={self.index}, rows={len(self)}, is_last={self.is_last})"


class PagedResultSet:
    """
    Forward-only sequence of result pages.

    The first page is available immediately; every later page is requested
    from the driver only when iteration reaches it and is then kept, so
    iterating again replays the cached pages before fetching new ones.

    Empty pages ahead of the first row are skipped before the result is
    built, so the first page always holds rows and a scan that matches
    nothing gives None instead. Later pages can still be empty when the
    store filters server side (ALLOW FILTERING).

    Example:
        >>> result = store.get('events', page_size=100)
        >>> for page in result:
        ...     process(page)
        >>> result.exhausted
        True
    """

    def __init__(self, first_handle, pager: 'ResultPager'):
        self._pager = pager
        self._handle = first_handle
        self._pages: List[ResultPage] = [pager.to_page(first_handle, 0)]

    @property
    def column_names(self) -> List[str]:
        return self._pages[0].column_names

    @property
    def fetched_pages(self) -> int:
        return len(self._pages)

    @property
    def exhausted(self) -> bool:
        """True once the page flagged last has been fetched."""
        return self._pages[-1].is_last

    @property
    def paging_state(self) -> Optional[bytes]:
        """Continuation cursor after the most recently fetched page."""
        return self._handle.paging_state

    def _fetch_next(self) -> Optional[ResultPage]:
        if self.exhausted:
            return None
        handle = self._handle.next_page()
        if handle is None:
            return None
        self._handle = handle
        page = self._pager.to_page(handle, len(self._pages))
        self._pages.append(page)
        return page

    def __iter__(self) -> Iterator[ResultPage]:
        index = 0
        while True:
            if index < len(self._pages):
                yield self._pages[index]
            elif self._fetch_next() is None:
                return
            else:
                yield self._pages[index]
            index += 1

    def rows(self) -> Iterator[Row]:
        """Iterate over every row across pages."""
        for page in self:
            yield from page

    def fetch_all(self) -> List[ResultPage]:
        """Fetch every remaining page and return all pages."""
        for _ in self:
            pass
        return list(self._pages)

    def to_df(self) -> pd.DataFrame:
        """Fetch every remaining page and return all rows as a DataFrame."""
        return RowSequence(self.rows(), self.column_names).to_df()

    def __repr__(self):
        return f"PagedResultSet(fetched_pages={self.fetched_pages}, exhausted={self.exhausted})"


class ResultPager:
    """
    Runs rendered statements and materializes what the driver returns.

    Args:
        coercer: TypeCoercer used for inbound conversion
        auto_convert: Convert cells to plain host values (default True)
    """

    def __init__(self, coercer, auto_convert: bool = True):
        self.coercer = coercer
        self.auto_convert = auto_convert
        self._logger = get_logger()

    def execute(self, connection, rendered, values, page_size: int = 0):
        """
        Execute a rendered statement with its bound values and materialize it.

        Returns:
            PagedResultSet when page_size > 0 and rows came back, RowSequence
            for other reads with rows, None for a read without rows, True for
            a completed write
        """
        handle = connection.execute(rendered.text, values, page_size=page_size or None)
        return self.materialize(handle, page_size=page_size, kind=rendered.kind)

    def materialize(self, handle, page_size: int = 0, kind: StatementKind = StatementKind.select):
        """
        Turn a ResultHandle into the caller-facing result.

        Raises:
            WriteNotAppliedError: If a conditional write was rejected
            ExecutionError: If fetching a later page fails
        """
        if handle.column_names and handle.column_names[0] == APPLIED_COLUMN:
            return self._check_applied(handle)

        if kind in _WRITE_KINDS:
            return True
        if kind == StatementKind.raw and not handle.column_names:
            # Statement returns no rows (DDL, plain writes)
            return True

        if page_size and page_size > 0:
            # Filtered scans can return empty pages ahead of the first match
            while handle.row_count == 0 and not handle.is_last_page:
                handle = handle.next_page()
            if handle.row_count == 0:
                return None
            return PagedResultSet(handle, self)

        rows = []
        page = handle
        while page is not None:
            rows.extend(self.convert_rows(page))
            page = page.next_page()

        if not rows:
            self._logger.debug("[Result] No rows")
            return None
        return RowSequence(rows, handle.column_names)

    def to_page(self, handle, index: int) -> ResultPage:
        return ResultPage(self.convert_rows(handle), handle.column_names, index=index, is_last=handle.is_last_page)

    def convert_rows(self, handle) -> List[Row]:
        names = handle.column_names
        types = handle.column_types if len(handle.column_types) == len(names) else [None] * len(names)
        return [self.convert_row(row, names, types) for row in handle.rows]

    def convert_row(self, row, column_names: List[str], column_types: List[Any]) -> Row:
        if isinstance(row, Mapping):
            items = list(row.items())
            cell_types = dict(zip(column_names, column_types))
            types = [cell_types.get(name) for name, _ in items]
        else:
            items = list(zip(column_names, row))
            types = column_types

        if not self.auto_convert:
            return Row(items)
        return Row(
            (name, self.coercer.from_storage(cell_type, value, column=name))
            for (name, value), cell_type in zip(items, types)
        )

    def _check_applied(self, handle) -> bool:
        if not handle.rows:
            return True
        row = self.convert_rows(handle)[0]
        if row.pop(APPLIED_COLUMN, True):
            return True
        self._logger.debug("[Result] Conditional write not applied, current values: %s", row)
        raise WriteNotAppliedError(handle.text, current=dict(row))

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

Value = Union[int, float, str]
Row = Dict[str, Value]


@dataclass(frozen=True)
class Table:
    """
    Parsed CSV rows sharing one ordered column list.
    Rows are never modified after parsing; `head` returns a new Table.
    """
    columns: Tuple[str, ...]
    rows: Tuple[Row, ...]

    def __len__(self) -> int:
        return len(self.rows)

    def values(self, column: str) -> List[Optional[Value]]:
        return [row.get(column) for row in self.rows]

    def finite_values(self, column: str) -> np.ndarray:
        """Values of `column` coerced to float, keeping only finite ones, in row order."""
        if not self.rows:
            return np.empty(0, dtype=float)
        s = pd.to_numeric(pd.Series(self.values(column), dtype=object), errors="coerce")
        arr = s.to_numpy(dtype=float, na_value=np.nan)
        return arr[np.isfinite(arr)]

    def head(self, n: int) -> "Table":
        return Table(columns=self.columns, rows=self.rows[: max(n, 0)])

    def records(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        rows = self.rows if limit is None else self.rows[:limit]
        return [dict(r) for r in rows]

    def to_frame(self, numeric_columns: Sequence[str] = ()) -> pd.DataFrame:
        """
        Object-dtype frame, blank or absent cells as NA.
        `numeric_columns` are coerced to float with non-finite values as NA,
        so `isna()` agrees with the statistics' notion of missing.
        """
        cols = list(self.columns)
        records = [{c: (None if r.get(c) == "" else r.get(c)) for c in cols} for r in self.rows]
        df = pd.DataFrame(records, columns=cols, dtype=object)
        for c in numeric_columns:
            s = pd.to_numeric(df[c], errors="coerce").astype(float)
            df[c] = s.where(np.isfinite(s))
        return df

"""Immutable tabular dataset used by the interpretation computations."""

import numbers
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..utils.exceptions import InvalidConfigError, InvalidFeatureError, InvalidTargetError


Row = Mapping[str, float]


def _as_number(column: str, value) -> float:
    if not isinstance(value, numbers.Real):
        raise InvalidFeatureError(
            f"Column '{column}' holds non-numeric value {value!r}"
        )
    number = float(value)
    if not np.isfinite(number):
        raise InvalidFeatureError(f"Column '{column}' holds non-finite value {value!r}")
    return number


class Dataset:
    """
    Ordered, read-only collection of rows sharing the same numeric columns.

    Values are stored column-wise; rows are materialized on demand as
    read-only mappings. Every "modifying" method returns a new Dataset.
    """

    def __init__(self, rows: Iterable[Row], target: Optional[str] = None):
        rows = list(rows)
        if not rows:
            raise InvalidConfigError("Dataset must contain at least one row")

        columns = tuple(rows[0].keys())
        expected = set(columns)
        for i, row in enumerate(rows):
            keys = set(row.keys())
            if keys != expected:
                missing = sorted(expected - keys)
                extra = sorted(keys - expected)
                raise InvalidFeatureError(
                    f"Row {i} columns differ from row 0 "
                    f"(missing: {missing}, unexpected: {extra})"
                )

        data = {
            col: np.array([_as_number(col, row[col]) for row in rows], dtype=float)
            for col in columns
        }
        self._init_from_columns(columns, data, target)

    @classmethod
    def _from_columns(
        cls, columns: Tuple[str, ...], data: Dict[str, np.ndarray], target: Optional[str]
    ) -> "Dataset":
        dataset = cls.__new__(cls)
        dataset._init_from_columns(columns, data, target)
        return dataset

    def _init_from_columns(self, columns, data, target):
        if not columns:
            raise InvalidConfigError("Dataset must contain at least one column")
        if target is not None and target not in data:
            raise InvalidTargetError(f"Target column '{target}' not found in dataset")
        for values in data.values():
            values.setflags(write=False)
        self._columns = columns
        self._data = data
        self._target = target
        self._rows = None

    @classmethod
    def from_frame(cls, df: pd.DataFrame, target: Optional[str] = None) -> "Dataset":
        """Build a dataset from a DataFrame whose columns are all numeric."""
        if df.empty:
            raise InvalidConfigError("Dataset must contain at least one row")

        data = {}
        for col in df.columns:
            series = df[col]
            if not pd.api.types.is_numeric_dtype(series):
                raise InvalidFeatureError(f"Column '{col}' is not numeric ({series.dtype})")
            values = series.to_numpy(dtype=float)
            if not np.all(np.isfinite(values)):
                raise InvalidFeatureError(f"Column '{col}' holds missing or non-finite values")
            data[str(col)] = values.copy()

        return cls._from_columns(tuple(data.keys()), data, target)

    @classmethod
    def from_csv(cls, path: str, target: Optional[str] = None) -> "Dataset":
        """Read a CSV file with pandas and build a dataset from it."""
        csv_path = Path(path)
        if not csv_path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")
        return cls.from_frame(pd.read_csv(csv_path), target=target)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({col: self._data[col] for col in self._columns})

    @property
    def columns(self) -> Tuple[str, ...]:
        return self._columns

    @property
    def target(self) -> Optional[str]:
        return self._target

    @property
    def feature_names(self) -> List[str]:
        """Columns other than the designated target."""
        return [col for col in self._columns if col != self._target]

    @property
    def rows(self) -> Tuple[Row, ...]:
        if self._rows is None:
            arrays = [self._data[col] for col in self._columns]
            self._rows = tuple(
                MappingProxyType(dict(zip(self._columns, (float(v) for v in values))))
                for values in zip(*arrays)
            )
        return self._rows

    def __getstate__(self):
        # mappingproxy rows cannot be pickled; workers rebuild them
        state = self.__dict__.copy()
        state['_rows'] = None
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        for values in self._data.values():
            values.setflags(write=False)

    def __len__(self) -> int:
        return len(self._data[self._columns[0]])

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __contains__(self, column: str) -> bool:
        return column in self._data

    def __repr__(self) -> str:
        return (
            f"Dataset(rows={len(self)}, columns={list(self._columns)}, "
            f"target={self._target!r})"
        )

    def require_feature(self, name: str) -> None:
        if name not in self._data:
            raise InvalidFeatureError(f"Feature '{name}' not found in dataset")

    def require_target(self, name: str) -> None:
        if name not in self._data:
            raise InvalidTargetError(f"Target column '{name}' not found in dataset")

    def column(self, name: str) -> np.ndarray:
        """Return a read-only view of one column."""
        self.require_feature(name)
        return self._data[name]

    def with_target(self, target: Optional[str]) -> "Dataset":
        return self._from_columns(self._columns, self._data, target)

    def with_column_value(self, name: str, value: float) -> "Dataset":
        """Return a copy with every row's ``name`` entry overwritten by ``value``."""
        self.require_feature(name)
        return self.with_column_values(name, np.full(len(self), float(value)))

    def with_column_values(self, name: str, values: Sequence[float]) -> "Dataset":
        """Return a copy with column ``name`` replaced, other columns unchanged."""
        self.require_feature(name)
        values = np.asarray(values, dtype=float)
        if values.shape != (len(self),):
            raise InvalidConfigError(
                f"Expected {len(self)} values for column '{name}', got {values.shape}"
            )
        data = dict(self._data)
        data[name] = values.copy()
        return self._from_columns(self._columns, data, self._target)

    def take(self, indices: Sequence[int]) -> "Dataset":
        """Return the rows at ``indices``, in that order."""
        indices = np.asarray(indices, dtype=int)
        if indices.size == 0:
            raise InvalidConfigError("Dataset must contain at least one row")
        data = {col: values[indices] for col, values in self._data.items()}
        return self._from_columns(self._columns, data, self._target)

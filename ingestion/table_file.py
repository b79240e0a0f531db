"""
Локальная проверка табличного файла перед загрузкой.

Первые skip_rows строк - служебные (в выгрузках cBioPortal это строки "#..."),
следующая строка - заголовок.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List

import pandas as pd

_NON_IDENT_RE = re.compile(r"[^a-z0-9_]")


@dataclass(frozen=True)
class TableFileSummary:
    path: Path
    row_count: int
    columns: List[str]


def normalize_column_name(name: str) -> str:
    """Так же нормализует имена колонок сервер при создании таблицы."""
    return _NON_IDENT_RE.sub("_", name.strip().lower())


def inspect_table_file(path: Path, skip_rows: int = 0, delimiter: str = "\t") -> TableFileSummary:
    """
    Пустые строки отбрасываются до отсчёта skip_rows, строки с лишними полями
    обрезаются по заголовку, короткие дополняются пустыми значениями.
    """
    if not path.exists():
        raise FileNotFoundError(f"data file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        lines = [line for line in fh.read().splitlines() if line.strip()]
    if len(lines) <= skip_rows:
        raise ValueError(f"no header row in {path.name} after skipping {skip_rows} rows")

    content = "\n".join(lines[skip_rows:])
    header = pd.read_csv(
        io.StringIO(content), sep=delimiter, header=None, nrows=1, dtype=str, keep_default_na=False, engine="python"
    )
    columns = [str(c).strip() for c in header.iloc[0].tolist()]
    width = len(columns)
    if len(lines) == skip_rows + 1:
        return TableFileSummary(path=path, row_count=0, columns=columns)

    df = pd.read_csv(
        io.StringIO(content),
        sep=delimiter,
        skiprows=1,
        header=None,
        names=list(range(width)),
        index_col=False,
        dtype=str,
        keep_default_na=False,
        on_bad_lines=lambda row: row[:width],
        engine="python",
    )
    return TableFileSummary(path=path, row_count=len(df), columns=columns)


def ensure_primary_key(summary: TableFileSummary, primary_key: str) -> None:
    normalized = {normalize_column_name(c) for c in summary.columns}
    if normalize_column_name(primary_key) not in normalized:
        raise ValueError(f"primary key '{primary_key}' not found in {summary.path.name}")

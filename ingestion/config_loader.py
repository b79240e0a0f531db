"""
Загрузчик конфигурации для загрузки TCGA-датасета.

Читает config/tcga_upload.yaml и возвращает описание датасета и его таблиц.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional

import yaml

BASE_DIR = Path(__file__).resolve().parents[1]
CONFIG_PATH = BASE_DIR / "config" / "tcga_upload.yaml"


@dataclass(frozen=True)
class TableUploadSpec:
    file: str
    table_name: str
    display_name: str
    skip_rows: int = 0
    delimiter: str = "\t"
    primary_key: Optional[str] = None


@dataclass(frozen=True)
class DatasetUploadSpec:
    name: str
    description: str
    data_dir: Path
    tables: List[TableUploadSpec] = field(default_factory=list)


def load_dataset_spec(config_path: Path = CONFIG_PATH) -> DatasetUploadSpec:
    """Читает YAML-конфигурацию и возвращает описание загрузки."""
    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    try:
        section = data["DATASET"]
        tables = data["TABLES"]
    except KeyError as exc:
        raise KeyError(f"Секция {exc.args[0]} отсутствует в конфиге") from exc

    data_dir = Path(section.get("data_dir", "."))

    return DatasetUploadSpec(
        name=section["name"],
        description=section.get("description", ""),
        data_dir=data_dir,
        tables=[_to_table_spec(item) for item in tables],
    )


def _to_table_spec(obj: Mapping[str, Any]) -> TableUploadSpec:
    """Валидирует описание одной таблицы."""
    try:
        file_name = obj["file"]
        table_name = obj["table_name"]
    except KeyError as exc:
        raise ValueError(f"В описании таблицы нет поля '{exc.args[0]}': {obj}") from exc

    raw_skip = obj.get("skip_rows", 0)
    try:
        skip_rows = int(raw_skip)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Неверное значение skip_rows для '{table_name}': {raw_skip}") from exc
    if skip_rows < 0:
        raise ValueError(f"skip_rows для '{table_name}' не может быть отрицательным")

    return TableUploadSpec(
        file=str(file_name),
        table_name=str(table_name),
        display_name=str(obj.get("display_name") or table_name),
        skip_rows=skip_rows,
        delimiter=str(obj.get("delimiter", "\t")),
        primary_key=obj.get("primary_key"),
    )

"""
Parsing of ``*.meta`` files that describe a dataset directory.

Формат - упрощённый key: value:
    - "# ..." и пустые строки пропускаются;
    - ключ без значения открывает вложенный объект или список ("- item");
    - значения приводятся к bool / int / float, для tags и groups - список через запятую.

``dataset.meta`` описывает сам датасет, остальные ``*.meta`` - по одной таблице.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

DATASET_META_FILE = "dataset.meta"
META_SUFFIX = ".meta"
LIST_FIELDS = ("tags", "groups")
DEFAULT_RELATIONSHIP_TYPE = "many-to-one"

DATASET_CORE_FIELDS = ("name", "description", "tags", "source", "citation", "references")
TABLE_CORE_FIELDS = (
    "data_file",
    "data_filename",
    "table_name",
    "display_name",
    "skip_rows",
    "delimiter",
    "Delimiter",
    "primary_key",
    "foreign_key",
    "references",
)
COLUMN_METADATA_ROWS = {
    "column_display_name_row": "displayNameRow",
    "column_description_row": "descriptionRow",
    "column_datatype_row": "dataTypeRow",
    "column_priority_row": "priorityRow",
}

_INT_RE = re.compile(r"[0-9]+")
_FLOAT_RE = re.compile(r"[0-9]+\.[0-9]+")
_FK_RE = re.compile(r"\(([^)]+)\)")
_REF_RE = re.compile(r"([a-zA-Z0-9_]+)\(([^)]+)\)")


def parse_value(value: str, key: str = "") -> Any:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if _INT_RE.fullmatch(value):
        return int(value)
    if _FLOAT_RE.fullmatch(value):
        return float(value)
    if "," in value and key in LIST_FIELDS:
        return [item.strip() for item in value.split(",")]
    return value


def parse_metadata_text(content: str) -> Dict[str, Any]:
    """Разбирает текст .meta-файла в словарь."""
    lines = content.split("\n")
    metadata: Dict[str, Any] = {}
    current_key: Optional[str] = None
    current_list: List[Any] = []
    current_obj: Dict[str, Any] = {}
    in_list = False
    in_obj = False
    base_indent = 0

    for i, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        indent = len(line) - len(line.lstrip())

        if stripped.startswith("-"):
            if not in_list and current_key:
                in_list = True
                in_obj = False
                current_list = []
                base_indent = indent
            if in_list and current_key:
                current_list.append(stripped[1:].strip())
            continue

        if ":" not in stripped:
            continue
        key, _, value = stripped.partition(":")
        key = key.strip()
        value = value.strip()

        # a key at or left of the opening indent closes the open block
        if in_obj and indent <= base_indent and current_key:
            metadata[current_key] = current_obj
            current_obj = {}
            in_obj = False
            current_key = None
        if in_list and indent <= base_indent and current_key:
            metadata[current_key] = current_list
            current_list = []
            in_list = False
            current_key = None

        if in_obj and indent > base_indent and current_key:
            current_obj[key] = parse_value(value, key)
            continue

        if value:
            metadata[key] = parse_value(value, key)
            continue

        current_key = key
        base_indent = indent
        for following in lines[i + 1:]:
            nxt = following.strip()
            if not nxt or nxt.startswith("#"):
                continue
            if nxt.startswith("-"):
                in_list = True
                current_list = []
            else:
                in_obj = True
                current_obj = {}
            break

    if in_list and current_key:
        metadata[current_key] = current_list
    if in_obj and current_key:
        metadata[current_key] = current_obj
    return metadata


def parse_metadata_file(path: Path) -> Dict[str, Any]:
    """Отсутствующий файл трактуется как пустые метаданные."""
    if not path.exists():
        return {}
    return parse_metadata_text(path.read_text(encoding="utf-8"))


def extract_custom_metadata(metadata: Mapping[str, Any], core_fields: Iterable[str]) -> Dict[str, Any]:
    core = set(core_fields)
    return {key: value for key, value in metadata.items() if key not in core}


def as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    return [value] if value else []


def parse_relationships(table_meta: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Собирает связи таблицы из трёх форматов (результаты объединяются):
        - relationship: вложенный объект foreign_key / references_table / references_column;
        - foreign_key + references: "(patient_id)" и "patients(patient_id)";
        - relationships: готовый список.
    """
    relationships: List[Dict[str, Any]] = []

    nested = table_meta.get("relationship")
    if isinstance(nested, dict):
        if nested.get("foreign_key") and nested.get("references_table") and nested.get("references_column"):
            relationships.append(
                {
                    "foreign_key": nested["foreign_key"],
                    "referenced_table": nested["references_table"],
                    "referenced_column": nested["references_column"],
                    "type": nested.get("type") or DEFAULT_RELATIONSHIP_TYPE,
                }
            )

    foreign_key = table_meta.get("foreign_key")
    references = table_meta.get("references")
    if foreign_key and references:
        fk_match = _FK_RE.search(str(foreign_key))
        ref_match = _REF_RE.search(str(references))
        if ref_match:
            relationships.append(
                {
                    "foreign_key": fk_match.group(1) if fk_match else foreign_key,
                    "referenced_table": ref_match.group(1),
                    "referenced_column": ref_match.group(2),
                    "type": DEFAULT_RELATIONSHIP_TYPE,
                }
            )

    listed = table_meta.get("relationships")
    if isinstance(listed, list):
        relationships.extend(listed)

    return relationships


def normalize_delimiter(raw: Any) -> str:
    delimiter = str(raw) if raw else "\t"
    if delimiter.lower() == "tab":
        return "\t"
    if delimiter.lower() == "comma":
        return ","
    return delimiter


def build_dataset_payload(dataset_meta: Mapping[str, Any], dataset_dir: Path) -> Dict[str, Any]:
    """Тело POST /datasets."""
    return {
        "name": dataset_meta.get("name") or dataset_dir.name,
        "description": dataset_meta.get("description") or "",
        "tags": as_list(dataset_meta.get("tags")),
        "source": dataset_meta.get("source") or "",
        "citation": dataset_meta.get("citation") or "",
        "references": as_list(dataset_meta.get("references")),
        "customMetadata": extract_custom_metadata(dataset_meta, DATASET_CORE_FIELDS),
    }


def build_table_fields(table_meta: Mapping[str, Any], data_file: str) -> Dict[str, str]:
    """Поля multipart-формы POST /datasets/{id}/tables (кроме самого файла)."""
    stem = Path(data_file).stem
    fields: Dict[str, str] = {
        "tableName": str(table_meta.get("table_name") or stem),
        "displayName": str(table_meta.get("display_name") or table_meta.get("table_name") or data_file),
        "skipRows": str(table_meta.get("skip_rows") or 0),
        "delimiter": normalize_delimiter(table_meta.get("delimiter") or table_meta.get("Delimiter")),
    }
    if table_meta.get("primary_key"):
        fields["primaryKey"] = str(table_meta["primary_key"])

    fields["customMetadata"] = json.dumps(extract_custom_metadata(table_meta, TABLE_CORE_FIELDS))

    if table_meta.get("relationship") or table_meta.get("foreign_key") or table_meta.get("relationships"):
        fields["relationships"] = json.dumps(parse_relationships(table_meta))

    column_config = {
        target: table_meta[source] for source, target in COLUMN_METADATA_ROWS.items() if source in table_meta
    }
    if column_config:
        fields["columnMetadataConfig"] = json.dumps(column_config)
    return fields

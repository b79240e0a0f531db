"""
Upload a dataset directory described by ``*.meta`` files.

dataset.meta задаёт название и описание датасета, каждый <table>.meta - файл
данных (data_file), параметры разбора и связи с другими таблицами.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import aiohttp

from .api_client import DatasetApiClient, TableUploadRequest, UploadError, open_session, record_failure
from .metadata import (
    DATASET_META_FILE,
    META_SUFFIX,
    build_dataset_payload,
    build_table_fields,
    parse_metadata_file,
)
from .table_file import ensure_primary_key, inspect_table_file
from .utils.config import load_api_config

logger = logging.getLogger(__name__)

DEFAULT_DATASET_DIR = Path("example_data/gbm_tcga_pan_can_atlas_2018")


def collect_table_requests(dataset_dir: Path) -> List[TableUploadRequest]:
    """
    Собирает формы для всех <table>.meta в каталоге.

    Таблицы без data_file или с отсутствующим файлом пропускаются с предупреждением.
    """
    requests: List[TableUploadRequest] = []
    meta_files = sorted(
        p for p in dataset_dir.iterdir() if p.name.endswith(META_SUFFIX) and p.name != DATASET_META_FILE
    )
    for meta_path in meta_files:
        table_meta = parse_metadata_file(meta_path)
        data_file = table_meta.get("data_file") or table_meta.get("data_filename")
        if not data_file:
            logger.warning("No data_file specified in %s, skipping", meta_path.name)
            continue
        data_path = dataset_dir / str(data_file)
        if not data_path.exists():
            logger.warning("Data file %s not found, skipping", data_file)
            continue

        fields = build_table_fields(table_meta, str(data_file))
        summary = inspect_table_file(data_path, skip_rows=int(fields["skipRows"]), delimiter=fields["delimiter"])
        if "primaryKey" in fields:
            ensure_primary_key(summary, fields["primaryKey"])
        requests.append(TableUploadRequest(path=data_path, fields=fields))
    return requests


async def upload_dataset_with_metadata(
    client: DatasetApiClient,
    dataset_dir: Path,
) -> Tuple[str, int]:
    """Возвращает (dataset_id, число загруженных таблиц)."""
    logger.info("Processing dataset directory: %s", dataset_dir)
    dataset_meta = parse_metadata_file(dataset_dir / DATASET_META_FILE)
    logger.info("Dataset metadata: %s", json.dumps(dataset_meta, indent=2))

    requests = collect_table_requests(dataset_dir)

    dataset_id = await client.create_dataset(build_dataset_payload(dataset_meta, dataset_dir))
    logger.info("Dataset created with ID: %s", dataset_id)

    if not requests:
        logger.warning("No table metadata files found")
        return dataset_id, 0

    for request in requests:
        logger.info("Uploading table: %s", request.fields.get("displayName", request.table_name))
        result = await client.upload_table(dataset_id, request)
        logger.info("  %s rows, %s columns", result.row_count, result.columns)
    return dataset_id, len(requests)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Upload a dataset directory with .meta files")
    parser.add_argument("dataset_dir", nargs="?", type=Path, default=DEFAULT_DATASET_DIR)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    api_cfg = load_api_config()

    async def _run() -> Tuple[str, int]:
        async with open_session(api_cfg) as session:
            return await upload_dataset_with_metadata(DatasetApiClient(api_cfg, session), args.dataset_dir)

    try:
        dataset_id, uploaded = asyncio.run(_run())
    except (UploadError, aiohttp.ClientError, OSError, ValueError) as exc:
        logger.error("Upload failed: %s", exc)
        record_failure(exc)
        return 1

    if uploaded:
        logger.info("Dataset successfully uploaded! View at: %s", api_cfg.dataset_view_url(dataset_id))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

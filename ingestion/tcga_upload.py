"""
One-shot upload of the TCGA GBM Pan-Can Atlas 2018 clinical tables.

Шаги:
    1. создать датасет (POST /datasets);
    2. загрузить таблицу patients;
    3. загрузить таблицу samples.
Повторов и частичного восстановления нет: первая ошибка прерывает скрипт.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import aiohttp

from .api_client import DatasetApiClient, TableUploadRequest, UploadError, open_session, record_failure
from .config_loader import CONFIG_PATH, DatasetUploadSpec, load_dataset_spec
from .table_file import ensure_primary_key, inspect_table_file
from .utils.config import ApiConfig, load_api_config

logger = logging.getLogger(__name__)


def build_table_requests(spec: DatasetUploadSpec, data_dir: Path) -> List[TableUploadRequest]:
    """Проверяет файлы локально и готовит формы для загрузки."""
    requests: List[TableUploadRequest] = []
    for table in spec.tables:
        path = data_dir / table.file
        summary = inspect_table_file(path, skip_rows=table.skip_rows, delimiter=table.delimiter)
        if table.primary_key:
            ensure_primary_key(summary, table.primary_key)
        logger.info(
            "preflight table=%s rows=%s columns=%s", table.table_name, summary.row_count, len(summary.columns)
        )
        fields = {
            "tableName": table.table_name,
            "displayName": table.display_name,
            "skipRows": str(table.skip_rows),
            "delimiter": table.delimiter,
        }
        if table.primary_key:
            fields["primaryKey"] = table.primary_key
        requests.append(TableUploadRequest(path=path, fields=fields))
    return requests


async def upload_tcga_dataset(
    client: DatasetApiClient,
    spec: DatasetUploadSpec,
    requests: Sequence[TableUploadRequest],
) -> str:
    logger.info("Creating dataset name=%s", spec.name)
    dataset_id = await client.create_dataset({"name": spec.name, "description": spec.description})
    logger.info("Dataset created with ID: %s", dataset_id)

    for request in requests:
        logger.info("Uploading %s table...", request.table_name)
        result = await client.upload_table(dataset_id, request)
        logger.info(
            "%s table uploaded: %s rows, %s columns", request.table_name, result.row_count, result.columns
        )
    return dataset_id


async def _run(api_cfg: ApiConfig, spec: DatasetUploadSpec, requests: Sequence[TableUploadRequest]) -> str:
    async with open_session(api_cfg) as session:
        return await upload_tcga_dataset(DatasetApiClient(api_cfg, session), spec, requests)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Upload the TCGA GBM clinical dataset")
    parser.add_argument("--config", type=Path, default=CONFIG_PATH)
    parser.add_argument("--data-dir", type=Path, help="override DATASET.data_dir from the config")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    api_cfg = load_api_config()
    try:
        spec = load_dataset_spec(args.config)
        requests = build_table_requests(spec, args.data_dir or spec.data_dir)
        dataset_id = asyncio.run(_run(api_cfg, spec, requests))
    except (UploadError, aiohttp.ClientError, OSError, KeyError, ValueError) as exc:
        logger.error("Upload failed: %s", exc)
        record_failure(exc)
        return 1

    logger.info("TCGA dataset successfully uploaded! View at: %s", api_cfg.dataset_view_url(dataset_id))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

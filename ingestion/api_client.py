"""
HTTP-клиент REST API BIAI для создания датасетов и загрузки таблиц.

Запросы выполняются строго последовательно, без повторов.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

import aiohttp
from prometheus_client import Counter, Histogram

from .utils.config import ApiConfig

logger = logging.getLogger(__name__)

UPLOAD_DURATION = Histogram("biai_upload_duration_seconds", "Загрузка таблицы, секунды")
UPLOAD_TABLES = Counter("biai_upload_tables_total", "Количество загруженных таблиц", ["table"])
UPLOAD_FAILURES = Counter("biai_upload_failures_total", "Счётчик ошибок загрузки", ["stage"])

TSV_CONTENT_TYPE = "text/tab-separated-values"


class UploadError(RuntimeError):
    def __init__(self, stage: str, status: int, body: Any) -> None:
        super().__init__(f"{stage} failed: HTTP {status}: {body}")
        self.stage = stage
        self.status = status
        self.body = body


@dataclass(frozen=True)
class TableUploadRequest:
    path: Path
    fields: Dict[str, str] = field(default_factory=dict)

    @property
    def table_name(self) -> str:
        return self.fields.get("tableName", self.path.stem)


@dataclass(frozen=True)
class TableUploadResult:
    row_count: int
    columns: int


class DatasetApiClient:
    """Тонкая обёртка над endpoint'ами /datasets."""

    def __init__(self, cfg: ApiConfig, session: aiohttp.ClientSession) -> None:
        self.cfg = cfg
        self.session = session

    async def create_dataset(self, payload: Mapping[str, Any]) -> str:
        """POST /datasets, возвращает id нового датасета."""
        url = f"{self.cfg.base_url}/datasets"
        async with self.session.post(url, json=dict(payload)) as resp:
            data = await self._read(resp, stage="dataset")
        return str(data["dataset"]["id"])

    async def upload_table(self, dataset_id: str, request: TableUploadRequest) -> TableUploadResult:
        """POST /datasets/{id}/tables с multipart-формой."""
        url = f"{self.cfg.base_url}/datasets/{dataset_id}/tables"
        with UPLOAD_DURATION.time(), request.path.open("rb") as fh:
            form = aiohttp.FormData()
            form.add_field("file", fh, filename=request.path.name, content_type=TSV_CONTENT_TYPE)
            for name, value in request.fields.items():
                form.add_field(name, value)
            async with self.session.post(url, data=form) as resp:
                data = await self._read(resp, stage="table")
        UPLOAD_TABLES.labels(table=request.table_name).inc()
        table = data["table"]
        return TableUploadResult(row_count=int(table["rowCount"]), columns=int(table["columns"]))

    async def _read(self, resp: aiohttp.ClientResponse, *, stage: str) -> Dict[str, Any]:
        if resp.status >= 400:
            body: Any = await resp.text()
            logger.error("api_error stage=%s status=%s body=%s", stage, resp.status, body)
            UPLOAD_FAILURES.labels(stage=stage).inc()
            raise UploadError(stage, resp.status, body)
        return await resp.json(content_type=None)


def record_failure(exc: BaseException) -> None:
    """Считает ошибку, пойманную в main(); HTTP-ошибки уже учтены в _read."""
    if isinstance(exc, UploadError):
        return
    if isinstance(exc, (aiohttp.ClientError, asyncio.TimeoutError)):
        UPLOAD_FAILURES.labels(stage="network").inc()
    else:
        UPLOAD_FAILURES.labels(stage="preflight").inc()


def open_session(cfg: ApiConfig) -> aiohttp.ClientSession:
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=cfg.timeout))

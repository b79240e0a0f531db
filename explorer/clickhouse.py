"""
ClickHouse client for the dataset explorer.

Собирает клиент clickhouse_connect из переменных окружения (.env) и
проверяет соединение запросом SELECT 1.
"""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Sequence
from urllib.parse import urlparse

from clickhouse_connect import get_client
from clickhouse_connect.driver import Client
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:8123"
DEFAULT_DATABASE = "biai"


@dataclass(frozen=True)
class ClickHouseConfig:
    url: str = DEFAULT_URL
    database: str = DEFAULT_DATABASE
    username: str = "default"
    password: str = ""

    @property
    def interface(self) -> str:
        return urlparse(self.url).scheme or "http"

    @property
    def host(self) -> str:
        return urlparse(self.url).hostname or "localhost"

    @property
    def port(self) -> int:
        port = urlparse(self.url).port
        if port is None:
            return 8443 if self.interface == "https" else 8123
        return port


def load_clickhouse_config(env: Mapping[str, str] | None = None) -> ClickHouseConfig:
    """
    Возвращает ClickHouseConfig из окружения.

    Ожидаемые переменные:
        - CLICKHOUSE_HOST (URL, например http://localhost:8123)
        - CLICKHOUSE_DATABASE
        - CLICKHOUSE_USER / CLICKHOUSE_PASSWORD (опционально)
    """
    if env is None:
        load_dotenv()
        env = os.environ
    url = env.get("CLICKHOUSE_HOST") or DEFAULT_URL
    if "://" not in url:
        url = f"http://{url}"
    return ClickHouseConfig(
        url=url,
        database=env.get("CLICKHOUSE_DATABASE") or DEFAULT_DATABASE,
        username=env.get("CLICKHOUSE_USER", "default"),
        password=env.get("CLICKHOUSE_PASSWORD", ""),
    )


def create_client(cfg: ClickHouseConfig) -> Client:
    return get_client(
        host=cfg.host,
        port=cfg.port,
        interface=cfg.interface,
        username=cfg.username,
        password=cfg.password,
        database=cfg.database,
    )


def test_connection(client: Client) -> bool:
    """Выполняет SELECT 1; ошибки логирует и возвращает False."""
    try:
        result = client.query("SELECT 1")
    except Exception:
        logger.exception("ClickHouse connection failed")
        return False
    logger.info("ClickHouse connection successful: %s", result.result_rows)
    return True


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check ClickHouse connectivity")
    parser.add_argument("--url", help="override CLICKHOUSE_HOST")
    parser.add_argument("--database", help="override CLICKHOUSE_DATABASE")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    cfg = load_clickhouse_config()
    if args.url or args.database:
        cfg = ClickHouseConfig(
            url=args.url or cfg.url,
            database=args.database or cfg.database,
            username=cfg.username,
            password=cfg.password,
        )
    try:
        client = create_client(cfg)
    except Exception:
        logger.exception("cannot create ClickHouse client url=%s", cfg.url)
        return 1
    return 0 if test_connection(client) else 1


if __name__ == "__main__":
    raise SystemExit(main())

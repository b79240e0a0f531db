"""
Configuration helpers for upload scripts.

Здесь описаны dataclass-структуры и функции для загрузки настроек REST API
из переменных окружения (.env подхватывается через python-dotenv).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:5001/api"
DEFAULT_UI_URL = "http://localhost:3000"


@dataclass(frozen=True)
class ApiConfig:
    base_url: str = DEFAULT_API_URL
    ui_url: str = DEFAULT_UI_URL
    timeout: float = 300.0

    def dataset_view_url(self, dataset_id: str) -> str:
        return f"{self.ui_url.rstrip('/')}/datasets/{dataset_id}"


def load_api_config(env: Mapping[str, str] | None = None) -> ApiConfig:
    """
    Возвращает ApiConfig из окружения.

    Ожидаемые переменные:
        - BIAI_API_URL
        - BIAI_UI_URL
        - BIAI_API_TIMEOUT (секунды, опционально)
    """
    if env is None:
        load_dotenv()
        env = os.environ
    raw_timeout = env.get("BIAI_API_TIMEOUT", "300")
    try:
        timeout = float(raw_timeout)
    except ValueError as exc:
        raise ValueError(f"Неверное значение BIAI_API_TIMEOUT: {raw_timeout}") from exc
    return ApiConfig(
        base_url=env.get("BIAI_API_URL", DEFAULT_API_URL).rstrip("/"),
        ui_url=env.get("BIAI_UI_URL", DEFAULT_UI_URL),
        timeout=timeout,
    )

"""
Разбор query-параметра countBy.

Параметр выбирает стратегию подсчёта для агрегаций:
    - отсутствует / пустой / "rows" - обычный подсчёт строк;
    - "parent:<table>" - подсчёт уникальных ссылок на родительскую таблицу.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

INVALID_COUNT_BY_MESSAGE = "Invalid countBy parameter"

ROWS_TOKEN = "rows"
PARENT_PREFIX = "parent:"

# Unicode space separators, line terminators and the BOM
_TRIM_CHARS = (
    "\t\n\v\f\r \u00a0\u1680"
    + "".join(chr(c) for c in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000\ufeff"
)


class CountByMode(str, Enum):
    PARENT = "parent"


@dataclass(frozen=True)
class CountByConfig:
    mode: CountByMode
    target_table: str

    def __post_init__(self) -> None:
        if not self.target_table:
            raise ValueError("target_table must not be empty")


@dataclass(frozen=True)
class ParseResult:
    """Либо конфигурация (None = подсчёт строк), либо сообщение об ошибке."""

    config: Optional[CountByConfig] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.config is not None and self.error is not None:
            raise ValueError("ParseResult cannot carry both config and error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def default(cls) -> "ParseResult":
        return cls()

    @classmethod
    def of(cls, config: CountByConfig) -> "ParseResult":
        return cls(config=config)

    @classmethod
    def failure(cls, message: str = INVALID_COUNT_BY_MESSAGE) -> "ParseResult":
        return cls(error=message)


class InvalidCountByParameter(ValueError):
    """Ошибка клиента: countBy не распознан."""

    status_code = 400

    def __init__(self, message: str = INVALID_COUNT_BY_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


def parse_count_by_query(raw: Optional[str]) -> ParseResult:
    """
    Преобразует сырое значение countBy в ParseResult. Никогда не бросает исключений.

    "rows" сравнивается без учёта регистра, префикс "parent:" и имя таблицы -
    с учётом регистра.
    """
    if not raw:
        return ParseResult.default()

    normalized = raw.strip(_TRIM_CHARS)
    if not normalized or normalized.lower() == ROWS_TOKEN:
        return ParseResult.default()

    if normalized.startswith(PARENT_PREFIX):
        target = normalized[len(PARENT_PREFIX):].strip(_TRIM_CHARS)
        if not target:
            return ParseResult.failure()
        return ParseResult.of(CountByConfig(mode=CountByMode.PARENT, target_table=target))

    return ParseResult.failure()


def resolve_count_by(raw: Optional[str]) -> Optional[CountByConfig]:
    """Вариант для HTTP-слоя: возвращает конфиг или бросает InvalidCountByParameter (400)."""
    result = parse_count_by_query(raw)
    if result.error is not None:
        raise InvalidCountByParameter(result.error)
    return result.config

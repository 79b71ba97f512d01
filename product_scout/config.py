# === FILE: product_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации ProductScout.
Используется Pydantic для описания схемы и проверки данных.

Источник: YAML или JSON файл; переменные окружения ``DOMAINS`` (JSON-массив),
``CONCURRENT_WORKERS`` и ``REDIS_URL`` перекрывают значения из файла.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Literal, Mapping, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from product_scout.utils import is_valid_url

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class CrawlerConfig(BaseModel):
    """Конфигурация одной сессии обхода доменов."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    domains: List[str] = Field(..., min_length=1, description="Список URL магазинов.")
    workers: int = Field(8, ge=1, description="Число параллельных воркеров.")
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, description="Заголовок User-Agent.")

    fetch_timeout: float = Field(10.0, gt=0, description="Таймаут HTTP-запроса (секунд).")
    navigation_timeout: float = Field(30.0, gt=0, description="Таймаут навигации браузера (секунд).")
    scroll_settle: float = Field(1.0, ge=0, description="Пауза после прокрутки (секунд).")
    load_more_settle: float = Field(2.0, ge=0, description="Пауза после клика 'load more' (секунд).")
    max_scroll_iterations: int = Field(20, ge=1, description="Жесткий лимит итераций прокрутки.")
    stable_height_rounds: int = Field(3, ge=2, description="Сколько одинаковых высот подряд считать концом.")
    headless: bool = True

    max_attempts: int = Field(4, ge=1, description="Всего попыток на домен (1 + повторы).")
    backoff_type: Literal["exponential", "linear", "fixed"] = "exponential"
    backoff_delay: float = Field(1.0, ge=0, description="Базовая задержка повтора (секунд).")
    rate_limit_window: float = Field(2.0, ge=0, description="Мин. интервал между стартами задач воркера.")
    visibility_timeout: float = Field(180.0, gt=0, description="Через сколько активная задача считается зависшей.")
    poll_timeout: float = Field(1.0, gt=0, description="Ожидание очереди/событий за один опрос.")

    store_backend: Literal["redis", "memory"] = "redis"
    queue_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "product_scout:"

    output: str = "crawled_urls.json"
    metrics_interval: float = Field(10.0, ge=0, description="Период логирования метрик (0 выключает).")

    @field_validator("domains")
    def _check_domains(cls, v: List[str]) -> List[str]:
        cleaned = []
        for raw in v:
            url = raw.strip()
            if not is_valid_url(url):
                raise ValueError(f"Invalid domain URL: {raw}")
            cleaned.append(url)
        return cleaned

    def override(self, **changes: Any) -> CrawlerConfig:
        """Копия с изменёнными полями (модель заморожена); None игнорируется."""
        data = self.model_dump()
        data.update({k: v for k, v in changes.items() if v is not None})
        return CrawlerConfig(**data)


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if environ.get("DOMAINS"):
        try:
            domains = json.loads(environ["DOMAINS"])
        except json.JSONDecodeError as exc:
            raise ValueError(f"DOMAINS must be a JSON array of URLs: {exc}") from exc
        if not isinstance(domains, list):
            raise ValueError("DOMAINS must be a non-empty array of URLs")
        overrides["domains"] = domains
    if environ.get("CONCURRENT_WORKERS"):
        overrides["workers"] = environ["CONCURRENT_WORKERS"]
    if environ.get("REDIS_URL"):
        overrides["redis_url"] = environ["REDIS_URL"]
    return overrides


def load_config(
    path: Union[str, Path, None],
    environ: Optional[Mapping[str, str]] = None,
) -> CrawlerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlerConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    data.update(_env_overrides(os.environ if environ is None else environ))

    try:
        return CrawlerConfig(**data)
    except ValidationError:
        raise


__all__ = ["CrawlerConfig", "load_config", "DEFAULT_USER_AGENT"]

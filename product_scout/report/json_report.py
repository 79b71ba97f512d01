# product_scout/report/json_report.py

"""
Генерация итогового JSON-документа ProductScout.

Документ строится из хранилища после того, как все домены пришли в
конечное состояние::

    {
      "https://example.com/shop": {"name": "example", "urls": ["...", "..."]},
      "https://failed.example":   {"name": "failed",  "urls": []}
    }
"""
import json
from pathlib import Path
from typing import Any, Dict, Iterable

from product_scout.logger import logger
from product_scout.models import DomainTarget
from product_scout.store.base import CrawlStore


async def build_report(store: CrawlStore, domains: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """
    Собирает {исходный URL домена: {name, urls}} по метаданным из хранилища.

    Домены без метаданных (провал или пропуск) получают пустой список urls.
    """
    data: Dict[str, Dict[str, Any]] = {}
    for url in domains:
        target = DomainTarget(url)
        metadata = await store.read_metadata(target.identity)
        if metadata is None:
            logger.warning("No data found for %s", url)
            data[url] = {"name": target.name, "urls": []}
            continue
        data[url] = metadata.to_dict()
    return data


def render_json(data: Dict[str, Any], output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет отчёт в формате JSON по указанному пути.

    :param data: словарь, построенный :func:`build_report`
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open('w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2 if pretty else None)

    logger.info("Created %s with %d domains", output, len(data))
    return output

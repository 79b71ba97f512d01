# === FILE: product_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа ProductScout для командной строки.

Команды:
  crawl     Обойти все домены из конфига и записать итоговый JSON
  report    Перестроить итоговый JSON из хранилища без обхода
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Команда crawl опции:
  --output PATH       Куда записать итоговый JSON (override output)
  --workers INT       Число воркеров (override workers)
  --store BACKEND     redis | memory
  --pretty            Преформатировать сводку (отступ 2)
  --timeout SEC       Таймаут всей сессии (секунд)

Дополнительно:
  --version, -v       Показать версию ProductScout

Пример:
  product-scout --config configs/default.yaml crawl --output crawled_urls.json --workers 4
"""
import sys
import asyncio
import json
from pathlib import Path

import click

from product_scout import __version__
from product_scout.config import load_config
from product_scout.engine import start_crawl, write_report
from product_scout.errors import ProductScoutError
from product_scout.logger import DEFAULT_FORMAT, init_logging

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='ProductScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default='configs/default.yaml',
    show_default=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд ProductScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--output', '-o', 'output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Куда записать итоговый JSON'
)
@click.option('--workers', '-w', 'workers', type=click.IntRange(min=1), default=None, help='Число воркеров')
@click.option(
    '--store', 'store_backend',
    type=click.Choice(['redis', 'memory']),
    default=None,
    help='Бэкенд хранилища'
)
@click.option('--pretty', is_flag=True, help='Преформатировать сводку (отступ 2)')
@click.option('--timeout', 'session_timeout', type=float, default=None, help='Таймаут всей сессии (секунд)')
@click.pass_context
def crawl(ctx, output, workers, store_backend, pretty, session_timeout):
    """Обойти домены и записать найденные URL товаров."""
    cfg = ctx.obj['config'].override(
        output=str(output) if output else None,
        workers=workers,
        store_backend=store_backend,
    )
    click.echo(f'Starting crawl of {len(cfg.domains)} domains with {cfg.workers} workers')
    try:
        if session_timeout:
            summary = asyncio.run(
                asyncio.wait_for(start_crawl(cfg), timeout=session_timeout)
            )
        else:
            summary = asyncio.run(start_crawl(cfg))
    except asyncio.TimeoutError:
        print_error(f'Обход не завершён за {session_timeout} секунд')
    except ProductScoutError as e:
        print_error(f'Crawl failed: {e}')
    except Exception as e:
        print_error(f'Ошибка при обходе: {e}')

    click.echo(json.dumps(summary.as_dict(), ensure_ascii=False, indent=2 if pretty else None))


@cli.command('report', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--output', '-o', 'output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Куда записать итоговый JSON'
)
@click.option('--pretty/--compact', default=True, help='Отступы в JSON')
@click.pass_context
def report(ctx, output, pretty):
    """Перестроить итоговый JSON из хранилища."""
    cfg = ctx.obj['config']
    try:
        saved = asyncio.run(write_report(cfg, str(output) if output else None, pretty=pretty))
    except Exception as e:
        print_error(f'Ошибка при сохранении JSON: {e}')
    click.echo(f'JSON report: {saved}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


def main():
    cli(prog_name='product-scout')


if __name__ == "__main__":
    main()

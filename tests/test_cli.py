# File: tests/test_cli.py
"""Тесты для CLI (`cli.py`) с использованием click.testing.CliRunner.
Проверяют команды `crawl`, `report`, `config`, `--version`, а также обработку ошибок.
"""
import asyncio
import json

import pytest
import product_scout.cli as cli_module
from click.testing import CliRunner
from product_scout.cli import cli
from product_scout.errors import StoreUnavailableError
from product_scout.logger import init_logging
from product_scout.models import CrawlSummary


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("DOMAINS", "CONCURRENT_WORKERS", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)
    yield
    # CLI перепривязывает лог к потоку CliRunner, который затем закрывается
    init_logging()


@pytest.fixture()
def seen_configs(monkeypatch):
    """Патчим start_crawl: запоминаем конфиг и возвращаем фиктивную сводку."""
    seen = []

    async def fake_crawl(cfg):
        seen.append(cfg)
        return CrawlSummary(
            total=2,
            completed={"https://example.com": frozenset({"https://example.com/p/1"})},
            failed={"https://broken.example": "NoProductURLsFound: nothing"},
            duration=1.234,
            output_path=cfg.output,
        )

    monkeypatch.setattr(cli_module, "start_crawl", fake_crawl)
    return seen


@pytest.fixture()
def cfg_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        json.dumps(
            {
                "domains": ["https://example.com", "https://broken.example"],
                "workers": 2,
                "store_backend": "memory",
                "output": str(tmp_path / "out.json"),
            }
        ),
        encoding="utf-8",
    )
    return path


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "ProductScout" in result.output


def test_show_config(cfg_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["domains"] == ["https://example.com", "https://broken.example"]
    assert data["workers"] == 2


def test_crawl_prints_summary(cfg_file, seen_configs):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "crawl"])
    assert result.exit_code == 0, result.output

    summary = json.loads(result.output.strip().splitlines()[-1])
    assert summary["total"] == 2
    assert summary["completed"] == 1
    assert summary["failed"] == ["https://broken.example"]
    assert summary["product_urls"] == 1
    assert len(seen_configs) == 1


def test_crawl_options_override_config(cfg_file, seen_configs, tmp_path):
    out = tmp_path / "elsewhere.json"
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(cfg_file), "crawl", "-o", str(out), "-w", "6", "--store", "redis"]
    )
    assert result.exit_code == 0, result.output

    cfg = seen_configs[0]
    assert cfg.output == str(out)
    assert cfg.workers == 6
    assert cfg.store_backend == "redis"


def test_environment_overrides_config_file(cfg_file, seen_configs, monkeypatch):
    monkeypatch.setenv("CONCURRENT_WORKERS", "3")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "crawl"])
    assert result.exit_code == 0, result.output
    assert seen_configs[0].workers == 3


def test_crawl_store_unavailable(cfg_file, monkeypatch):
    async def down(cfg):
        raise StoreUnavailableError("Redis unavailable at redis://localhost:6379/0")

    monkeypatch.setattr(cli_module, "start_crawl", down)

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "crawl"])
    assert result.exit_code == 1
    assert "Crawl failed" in result.output


def test_crawl_timeout(cfg_file, monkeypatch):
    async def slow(cfg):
        await asyncio.sleep(2)

    monkeypatch.setattr(cli_module, "start_crawl", slow)

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "crawl", "--timeout", "0.1"])
    assert result.exit_code != 0
    assert "не завершён" in result.output


def test_report_command(cfg_file, monkeypatch, tmp_path):
    calls = []

    async def fake_report(cfg, output=None, *, pretty=True):
        calls.append((output, pretty))
        return output or cfg.output

    monkeypatch.setattr(cli_module, "write_report", fake_report)

    out = tmp_path / "report.json"
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "report", "-o", str(out), "--compact"])
    assert result.exit_code == 0, result.output
    assert f"JSON report: {out}" in result.output
    assert calls == [(str(out), False)]


def test_invalid_config_exits(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("domains: []\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(bad), "config"])
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_package_exports_group_without_shadowing_module():
    import types

    import product_scout

    assert isinstance(cli_module, types.ModuleType)
    assert product_scout.cli is cli_module
    assert product_scout.main_cli is cli

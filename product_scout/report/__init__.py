# File: product_scout/report/__init__.py
"""product_scout.report: итоговый JSON-отчёт, используемый CLI и тестами."""

from __future__ import annotations

from product_scout.report.json_report import build_report, render_json

__all__ = ["build_report", "render_json"]

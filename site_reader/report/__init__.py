# File: site_reader/report/__init__.py
"""site_reader.report: Генерация отчётов (JSON и HTML) и доступ к Jinja2-шаблонам пакета."""

from __future__ import annotations

from functools import lru_cache

from jinja2 import Environment, PackageLoader, select_autoescape


@lru_cache(maxsize=1)
def template_env() -> Environment:
    """Окружение Jinja2 с шаблонами из ``site_reader/templates``."""
    return Environment(
        loader=PackageLoader("site_reader", "templates"),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )


from site_reader.report.html_report import render_html  # noqa: E402
from site_reader.report.json_report import render_json  # noqa: E402

__all__ = ["render_json", "render_html", "template_env"]

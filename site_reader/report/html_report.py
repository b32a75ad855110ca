# File: site_reader/report/html_report.py
"""site_reader.report.html_report: Генерация HTML-отчёта об обходе с помощью Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

from site_reader.crawler.models import CrawlResult
from site_reader.report import template_env

TEMPLATE_NAME = "crawl_report.html.j2"


def render_html(
    result: CrawlResult,
    output_path: Union[Path, str],
    start_url: str = "",
) -> Path:
    """Рендерит HTML-отчёт из шаблона пакета и сохраняет его по указанному пути.

    Args:
        result: объект CrawlResult.
        output_path: путь к итоговому HTML-файлу.
        start_url: стартовый URL обхода (для заголовка).

    Returns:
        Path до сохранённого HTML-файла.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    data = result.to_dict()
    context: dict[str, Any] = {
        "start_url": start_url or (data["pages"][0]["url"] if data["pages"] else ""),
        "pages": data["pages"],
        "stats": data["stats"],
        "errors": data["errors"],
    }

    html_content = template_env().get_template(TEMPLATE_NAME).render(**context)
    output_path.write_text(html_content, encoding="utf-8")

    return output_path

# === FILE: site_reader/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска SiteReader через командную строку.

Команды:
  serve       Запустить HTTP-сервис
  scrape      Извлечь одну страницу и вывести JSON
  crawl       Обойти сайт и вывести/сохранить отчёты
  video-info  Показать метаданные видео
  config      Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --fetcher NAME      Загрузчик страниц: browser или http (override fetcher)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Команда crawl опции:
  --max-pages INT     Лимит страниц (10)
  --max-depth INT     Глубина обхода (2)
  --allow-subdomains  Следовать ссылкам на поддомены
  --json PATH         Сохранить JSON-отчёт в файл
  --html PATH         Сохранить HTML-отчёт в файл
  --pretty            Преформатировать JSON-вывод (отступ 2)
  --timeout SEC       Таймаут всего обхода (секунд)

Пример:
  site-reader --fetcher http crawl https://example.com --max-pages 20 --json crawl.json
"""
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path

import click
from pydantic import ValidationError

from site_reader import __version__
from site_reader.config import DEFAULT_MAX_DEPTH, DEFAULT_MAX_PAGES, CrawlRequest, ScrapeRequest, load_config
from site_reader.engine import run_crawl, run_scrape
from site_reader.logger import DEFAULT_FORMAT, configure
from site_reader.report.html_report import render_html
from site_reader.report.json_report import render_json
from site_reader.server import run_server
from site_reader.video import get_video_info

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def echo_json(data, pretty: bool) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2 if pretty else None))


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteReader, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--fetcher', 'fetcher',
    default=None,
    type=click.Choice(['browser', 'http']),
    help='Загрузчик страниц (override fetcher)'
)
@click.option(
    '--log-level', 'log_level',
    default=None,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования (по умолчанию из конфига)'
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
def cli(ctx, config_path, fetcher, log_level, log_file, log_format):
    """Группа команд SiteReader CLI."""
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    if fetcher is not None:
        cfg = cfg.model_copy(update={'fetcher': fetcher})
    configure(
        level=log_level or cfg.log_level,
        log_file=str(log_file) if log_file else cfg.log_file,
        log_format=log_format,
    )
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default=None, help='Адрес для прослушивания (override host)')
@click.option('--port', '-p', type=int, default=None, help='Порт (override port)')
@click.pass_context
def serve(ctx, host, port):
    """Запустить HTTP-сервис."""
    run_server(ctx.obj['config'], host=host, port=port)


@cli.command('scrape', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--render', is_flag=True, help='Загружать изображения и CSS')
@click.option('--screenshot', is_flag=True, help='Добавить скриншот (base64)')
@click.option('--wait-for', 'wait_for', default=None, help='CSS-селектор, которого нужно дождаться')
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def scrape(ctx, url, render, screenshot, wait_for, pretty):
    """Извлечь одну страницу и вывести её в JSON."""
    request = ScrapeRequest(url=url, render=render, screenshot=screenshot, wait_for=wait_for)
    try:
        page = asyncio.run(run_scrape(ctx.obj['config'], request))
    except Exception as e:
        print_error(f'Ошибка при извлечении страницы: {e}')
    echo_json(page.to_dict(), pretty)


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--max-pages', type=int, default=DEFAULT_MAX_PAGES, show_default=True, help='Лимит страниц')
@click.option('--max-depth', type=int, default=DEFAULT_MAX_DEPTH, show_default=True, help='Глубина обхода')
@click.option('--allow-subdomains', is_flag=True, help='Следовать ссылкам на поддомены')
@click.option('--render', is_flag=True, help='Загружать изображения и CSS на каждой странице')
@click.option('--screenshot', is_flag=True, help='Скриншот каждой страницы')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.option('--timeout', 'crawl_timeout', type=float, default=None, help='Таймаут всего обхода (секунд)')
@click.pass_context
def crawl(ctx, url, max_pages, max_depth, allow_subdomains, render, screenshot,
          json_output, html_output, pretty, crawl_timeout):
    """Обойти сайт и сгенерировать отчёты."""
    cfg = ctx.obj['config']
    try:
        request = CrawlRequest(
            start_url=url,
            max_pages=max_pages,
            max_depth=max_depth,
            allow_subdomains=allow_subdomains,
            render=render,
            screenshot=screenshot,
        )
    except ValidationError as e:
        print_error(f'Неверные параметры обхода: {e}')

    try:
        if crawl_timeout:
            result = asyncio.run(asyncio.wait_for(run_crawl(cfg, request), timeout=crawl_timeout))
        else:
            result = asyncio.run(run_crawl(cfg, request))
    except asyncio.TimeoutError:
        print_error(f'Обход не завершён за {crawl_timeout} секунд')
    except Exception as e:
        print_error(f'Ошибка при обходе: {e}')

    # Если не сохраняем в файл, печатаем в stdout
    if not json_output and not html_output:
        echo_json(result.to_dict(), pretty)
        return

    if json_output:
        try:
            saved_json = render_json(result, json_output, pretty=pretty)
            click.echo(f'JSON report: {saved_json}')
        except OSError as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(result, html_output, start_url=url)
            click.echo(f'HTML report: {saved_html}')
        except OSError as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('video-info', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
def video_info(url, pretty):
    """Показать метаданные видео (через yt-dlp)."""
    try:
        info = asyncio.run(get_video_info(url))
    except Exception as e:
        print_error(f'Ошибка при получении метаданных видео: {e}')
    echo_json(asdict(info), pretty)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()

# === FILE: spa_settle/cli.py ===
#!/usr/bin/env python3
"""
Точка входа spa_settle для командной строки.

Команды:
  measure   Измерить время «успокоения» маршрутов и вывести/сохранить отчёты
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Команда measure опции:
  --route, -r ROUTE   Маршрут для измерения (можно повторять; override routes)
  --quiet-time MS     Длительность периода тишины (override spa.quiet_time)
  --json PATH         Сохранить JSON-отчёт в файл
  --html PATH         Сохранить HTML-отчёт в файл
  --template DIR      Папка с Jinja2-шаблонами
  --pretty            Преформатировать JSON-вывод (отступ 2)

Пример:
  spa_settle --config configs/default.yaml measure -r / -r /about --json settle.json
"""
import asyncio
import sys
from pathlib import Path

import click

from spa_settle import __version__
from spa_settle.config import MeasureConfig, load_config, spa_config_from
from spa_settle.engine import measure_routes
from spa_settle.logger import init_logging
from spa_settle.report.html_report import render_html
from spa_settle.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='spa_settle, version %(version)s')
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
    default='%(asctime)s %(levelname)s %(name)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд spa_settle."""
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


@cli.command('measure', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--route', '-r', 'routes',
    multiple=True,
    help='Маршрут для измерения (можно указать несколько раз)'
)
@click.option(
    '--quiet-time', 'quiet_time',
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help='Период тишины, мс'
)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами (по умолчанию встроенные)'
)
@click.option(
    '--pretty', is_flag=True,
    help='Преформатировать JSON-вывод (отступ 2)'
)
@click.pass_context
def measure(ctx, routes, quiet_time, json_output, html_output, template_dir, pretty):
    """Измерить маршруты и сгенерировать отчёты."""
    cfg = ctx.obj['config']
    update = {}
    if routes:
        update['routes'] = list(routes)
    if quiet_time is not None:
        update['spa'] = spa_config_from({'quiet_time': quiet_time}, cfg.spa)
    if update:
        try:
            # model_copy does not validate
            cfg = MeasureConfig(**{**dict(cfg), **update})
        except ValueError as e:
            print_error(f'Некорректные параметры: {e}')

    try:
        report = asyncio.run(measure_routes(cfg))
    except Exception as e:
        print_error(f'Ошибка при измерении: {e}')

    # Без файлов вывода печатаем отчёт в stdout
    if not json_output and not html_output:
        click.echo(report.json(pretty=pretty))
        return

    if json_output:
        try:
            saved_json = render_json(report, json_output)
            click.echo(f'JSON report: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(report, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()

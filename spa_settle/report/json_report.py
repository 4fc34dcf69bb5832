# spa_settle/report/json_report.py

"""
JSON-отчёт spa_settle: тот же документ, что печатает ``spa_settle measure``
без опций вывода, но сохранённый в файл.
"""
from pathlib import Path

from spa_settle.aggregator import MeasurementReport


def render_json(report: MeasurementReport, output_path: Path | str) -> Path:
    """
    Сохраняет MeasurementReport в JSON (с отступами) и возвращает путь к файлу.

    Пример:
    ```python
    from spa_settle.report.json_report import render_json
    report_path = render_json(report, 'reports/settle.json')
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(report.json(pretty=True), encoding='utf-8')
    return output

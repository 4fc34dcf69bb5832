"""spa_settle.report: JSON and HTML reports of a measurement run."""

from .html_report import render_html
from .json_report import render_json

__all__ = ["render_json", "render_html"]

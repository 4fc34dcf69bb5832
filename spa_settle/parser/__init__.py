"""spa_settle.parser: extraction of route sub-resources from HTML."""

from .html_parser import MediaRef, ParsedPage, PassiveRef, parse_html

__all__ = ["MediaRef", "ParsedPage", "PassiveRef", "parse_html"]

"""spa_settle.page: loading of route documents and their sub-resources."""

from .loader import PageLoad, PageLoader
from .media_host import HtmlMediaHost

__all__ = ["HtmlMediaHost", "PageLoad", "PageLoader"]

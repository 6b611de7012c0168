"""site_fetch.crawler: fetching pages and extracting their links."""

from .fetcher import Fetcher
from .models import LinkPolicy
from .page import Page

__all__ = ["Fetcher", "LinkPolicy", "Page"]

"""
site_fetch package initializer.
Defines package version and exposes the fetch core.
"""
__version__ = "0.1.0"

from .config import FetcherConfig, load_config
from .cookies import CookieJar, CookieStore
from .crawler import Fetcher, LinkPolicy, Page
from .storage import KeyedStore

__all__ = [
    "__version__",
    "FetcherConfig",
    "load_config",
    "CookieJar",
    "CookieStore",
    "Fetcher",
    "LinkPolicy",
    "Page",
    "KeyedStore",
]

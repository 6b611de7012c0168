"""
Loading and validation of the fetcher configuration.
Pydantic describes the schema and checks the values; unknown keys are ignored.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class FetcherConfig(BaseModel):
    """Options recognised by :class:`~site_fetch.crawler.fetcher.Fetcher`."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    redirect_limit: int = Field(5, ge=0, description="Maximum number of redirects followed per fetch.")
    retry_limit: int = Field(3, ge=1, description="Attempts per request before a transient fault is fatal.")
    retry_backoff: float = Field(1.0, ge=0, description="Base delay (seconds) of the exponential retry backoff.")
    user_agent: Optional[str] = Field(None, min_length=1, description="User-Agent header.")
    accept_cookies: bool = Field(False, description="Merge Set-Cookie headers into the cookie jar.")
    cookies: Optional[Union[Dict[str, str], str]] = Field(
        None, description="Seed cookies; sent even when accept_cookies is off."
    )
    http_basic_auth: Optional[Tuple[str, str]] = Field(None, description="(user, password) for HTTP basic auth.")
    proxy: Optional[str] = Field(None, description="Proxy URL, e.g. http://proxy:3128.")
    proxy_host: Optional[str] = Field(None, description="Proxy host, used when proxy is unset.")
    proxy_port: Optional[int] = Field(None, gt=0, lt=65536, description="Proxy port.")
    proxy_basic_auth: Optional[Tuple[str, str]] = Field(None, description="(user, password) for the proxy.")
    read_timeout: float = Field(10.0, gt=0, description="Timeout of one request (seconds).")
    verbose: bool = Field(False, description="Log retries and failures at WARNING level.")
    skip_no_follow: bool = Field(False, description="Honour rel=nofollow and robots noindex hints.")
    follow_subdomain: FrozenSet[str] = Field(
        default_factory=frozenset, description="Extra hosts whose links are kept."
    )
    external_links: bool = Field(False, description="Keep links to any host.")

    @field_validator("follow_subdomain", mode="before")
    def _lower_hosts(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [v]
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(str(h).lower() for h in v)
        return v

    @property
    def proxy_url(self) -> Optional[str]:
        if self.proxy:
            return self.proxy
        if self.proxy_host:
            port = f":{self.proxy_port}" if self.proxy_port else ""
            return f"http://{self.proxy_host}{port}"
        return None


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> FetcherConfig:
    """
    Read YAML or JSON and return a validated FetcherConfig.
    Raises FileNotFoundError when the file is missing.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    return FetcherConfig(**data)

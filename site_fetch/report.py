# site_fetch/report.py

"""
JSON summaries of fetched pages for the CLI.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from site_fetch.crawler.page import Page


def page_summary(page: Page) -> Dict[str, Any]:
    """Everything about *page* except its body, as JSON-friendly values."""
    return {
        "url": page.url,
        "status_code": page.status_code,
        "fetched": page.fetched,
        "content_type": page.content_type,
        "redirect_to": page.redirect_to,
        "response_time": page.response_time,
        "depth": page.depth,
        "referer": page.referer,
        "error": repr(page.error) if page.error is not None else None,
        "links": page.links,
    }


def render_json(summaries: Sequence[Dict[str, Any]], output_path: Union[Path, str]) -> Path:
    """
    Save *summaries* as JSON at *output_path*.

    :param summaries: list produced by :func:`page_summary`
    :param output_path: path of the JSON file
    :return: Path of the saved file
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    data: List[Dict[str, Any]] = list(summaries)
    with output.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)

    return output


__all__ = ["page_summary", "render_json"]

from __future__ import annotations

import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/126.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9,zh-CN;q=0.8",
}

NOISE_TAGS = ("script", "style", "noscript", "svg", "nav", "header", "footer", "form", "iframe")


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except Exception:
        return False


def clean_content(text: str, max_length: int = 8000) -> str:
    """Clean scraped content: collapse whitespace, trim to max length."""
    text = re.sub(r"\s+", " ", text).strip()
    if max_length > 0 and len(text) > max_length:
        text = text[:max_length] + "..."
    return text


def html_to_text(html: str) -> tuple[str, str]:
    """Return (title, visible text) of an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""
    for tag in soup(NOISE_TAGS):
        tag.decompose()
    body = soup.body or soup
    return title, body.get_text(" ", strip=True)


def proxy_kwargs(proxy: str | None) -> dict[str, str]:
    """httpx client kwargs for an optional proxy URL."""
    proxy = (proxy or "").strip()
    return {"proxy": proxy} if proxy else {}

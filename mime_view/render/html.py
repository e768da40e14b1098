"""HTML body to plain text."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup


URL_PATTERN = re.compile(r"https?://[^\s<>\"]+")


def html_to_text(html: str | None) -> str | None:
    if not html:
        return None
    soup = BeautifulSoup(html, "lxml")
    return soup.get_text(separator="\n").strip()


def extract_links(html: str | None) -> list[str]:
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    links = {anchor["href"] for anchor in soup.find_all("a", href=True)}
    links.update(URL_PATTERN.findall(soup.get_text(" ")))
    return sorted(link for link in links if URL_PATTERN.match(link))

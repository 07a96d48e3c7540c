"""HTML-to-text conversion for the plaintext part of outgoing emails."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup


def html_to_text(html: str) -> str:
    """Convert an HTML email body to readable plain text.

    Args:
        html: Rendered HTML document.

    Returns:
        Plain text with one blank line between blocks at most.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style", "head"]):
        tag.decompose()

    for link in soup.find_all("a", href=True):
        link.append(f" ({link['href']})")

    text = soup.get_text(separator="\n")

    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()

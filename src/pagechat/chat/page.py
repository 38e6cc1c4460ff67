"""Page content collaborators.

Extraction itself (readability-style parsing of a live DOM) happens outside
this package; the composer only needs something that returns a title and
a text blob, or None when nothing could be extracted.
"""

import re
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

_HEADING = re.compile(r"^#{1,6}\s+(.+?)\s*#*\s*$", re.MULTILINE)


class PageContent(BaseModel):
    """Result of extracting a page."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Page title")
    text: str = Field(description="Readable text content of the page")
    url: str = Field(default="", description="Page URL; history key")


class PageExtractor(Protocol):
    """Anything that can extract the current page."""

    async def extract(self) -> PageContent | None:
        """Return the page content, or None if extraction failed."""
        ...


class StaticPageExtractor:
    """Extractor returning a fixed, already-extracted page."""

    def __init__(self, page: PageContent | None):
        self._page = page

    async def extract(self) -> PageContent | None:
        return self._page


class FilePageExtractor:
    """Treat a local text or markdown file as the current page.

    The title is the first markdown heading, falling back to the file
    stem; the URL defaults to the file's URI.
    """

    def __init__(self, path: str | Path, url: str | None = None, title: str | None = None):
        self._path = Path(path)
        self._url = url
        self._title = title

    async def extract(self) -> PageContent | None:
        try:
            text = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

        if not text.strip():
            return None

        title = self._title
        if title is None:
            match = _HEADING.search(text)
            title = match.group(1) if match else self._path.stem

        return PageContent(
            title=title,
            text=text,
            url=self._url or self._path.resolve().as_uri(),
        )

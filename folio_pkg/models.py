"""Data models shared across Folio components."""

from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qs, urlsplit


@dataclass(frozen=True)
class PostMeta:
    """Everything known about a post without converting its body.

    ``raw_body`` is the Markdown exactly as stored after the front matter.
    """
    title: str
    date: str
    slug: str
    raw_body: str = ''
    excerpt: Optional[str] = None
    tags: Tuple[str, ...] = ()
    modified: Optional[str] = None
    draft: bool = False


@dataclass(frozen=True)
class Post(PostMeta):
    content: str = ''
    formatted_date: str = ''

    @classmethod
    def from_meta(cls, meta: PostMeta, content: str, formatted_date: str = '') -> 'Post':
        return cls(
            title=meta.title,
            date=meta.date,
            slug=meta.slug,
            raw_body=meta.raw_body,
            excerpt=meta.excerpt,
            tags=meta.tags,
            modified=meta.modified,
            draft=meta.draft,
            content=content,
            formatted_date=formatted_date,
        )


@dataclass(frozen=True)
class TagInfo:
    name: str
    count: int
    slugs: Tuple[str, ...] = ()


@dataclass
class SyncReport:
    """Outcome of a publish or pull pass. Partial failure lives in ``errors``."""
    succeeded: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def add_error(self, identifier: str, message: str) -> None:
        self.errors.append(f"{identifier}: {message}")


@dataclass
class BuildReport:
    pages: int = 0
    fragments: int = 0
    assets: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RouteContext:
    """A synthesized GET request handed to a route handler."""
    pathname: str
    url: str
    method: str = 'GET'
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_fragment(self) -> bool:
        return self.headers.get('HX-Request', '').lower() == 'true'

    @property
    def params(self) -> Dict[str, List[str]]:
        return parse_qs(urlsplit(self.url).query)

    def with_headers(self, headers: Dict[str, str]) -> 'RouteContext':
        merged = dict(self.headers)
        merged.update(headers)
        return replace(self, headers=merged)


@dataclass(frozen=True)
class RouteResponse:
    body: str
    content_type: str = 'text/html; charset=utf-8'
    status: int = 200


RouteHandler = Callable[[RouteContext], Union[RouteResponse, str]]


@dataclass(frozen=True)
class RouteEntry:
    path: str
    handler: RouteHandler
    is_html: bool

"""
Mapping between local posts and standard.site records.

Pure functions only. ``to_record`` goes from a post to a
``site.standard.document`` record; ``to_entity`` goes back to a post file.
"""

import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

DOCUMENT_COLLECTION = 'site.standard.document'
PUBLICATION_COLLECTION = 'site.standard.publication'
PUBLICATION_RKEY = 'self'

MARKDOWN_CONTENT = 'site.standard.content.markdown'
HTML_CONTENT = 'site.standard.content.html'

# textContent is a plain mirror of the body, hard-cut at this many code points
TEXT_CONTENT_LIMIT = 10000

_RKEY_STRIP = re.compile(r'[^a-z0-9-]')
_DATE_PREFIX = re.compile(r'\d{4}-\d{2}-\d{2}')


def record_key(slug: str) -> str:
    """Drop every character outside ``[a-z0-9-]``. Nothing is put back."""
    return _RKEY_STRIP.sub('', slug)


def publication_uri(did: str) -> str:
    return f"at://{did}/{PUBLICATION_COLLECTION}/{PUBLICATION_RKEY}"


def publication_record(url: str, name: str, description: Optional[str] = None) -> Dict[str, Any]:
    record = {
        '$type': PUBLICATION_COLLECTION,
        'url': url,
        'name': name,
    }
    if description:
        record['description'] = description
    return record


def to_iso_datetime(date_str: str) -> str:
    """``2025-01-15`` -> ``2025-01-15T00:00:00.000Z``."""
    parsed = datetime.strptime(date_str[:10], '%Y-%m-%d')
    return parsed.strftime('%Y-%m-%dT%H:%M:%S.000Z')


def to_record(post, parent_ref: Optional[str], site_origin: str) -> Dict[str, Any]:
    """
    Build a document record from a post.

    Args:
        post: A ``PostMeta`` (or ``Post``); its raw Markdown body is published,
            not the rendered HTML
        parent_ref: AT-URI of the publication record, if known
        site_origin: Public site URL, used as ``site`` when there is no
            publication reference

    Returns:
        The record dict, ready for ``put_record``
    """
    record = {
        '$type': DOCUMENT_COLLECTION,
        'site': parent_ref or site_origin.rstrip('/'),
        'title': post.title,
        'publishedAt': to_iso_datetime(post.date),
        'path': f"/posts/{post.slug}",
    }
    if post.excerpt:
        record['description'] = post.excerpt
    record['content'] = {'$type': MARKDOWN_CONTENT, 'value': post.raw_body}
    record['textContent'] = post.raw_body[:TEXT_CONTENT_LIMIT]
    if post.tags:
        record['tags'] = list(post.tags)
    if post.modified:
        record['updatedAt'] = to_iso_datetime(post.modified)
    return record


def _quote(value: str) -> str:
    escaped = value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')
    return f'"{escaped}"'


def slug_from_path(path: str) -> str:
    slug = re.sub(r'^/posts/', '', path or '')
    return slug.rstrip('/')


def extract_body(record: Dict[str, Any]) -> str:
    content = record.get('content')
    if isinstance(content, dict) and content.get('$type') in (MARKDOWN_CONTENT, HTML_CONTENT):
        value = content.get('value')
        if isinstance(value, str):
            return value
    return record.get('textContent') or ''


def _record_date(record, field):
    """The leading YYYY-MM-DD of a timestamp field; raises ValueError without one."""
    value = record.get(field)
    match = _DATE_PREFIX.match(value) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"{field} {value!r} does not start with a YYYY-MM-DD date")
    return match.group(0)


def to_entity(record: Dict[str, Any]) -> Tuple[str, str]:
    """Rebuild ``(filename, file_contents)`` for a document record."""
    slug = slug_from_path(record.get('path', ''))
    published = _record_date(record, 'publishedAt')

    lines = [
        '---',
        f"title: {_quote(record.get('title', ''))}",
        f"date: {published}",
    ]

    tags = record.get('tags') or []
    if tags:
        lines.append('tags:')
        lines.extend(f"  - {_quote(tag)}" for tag in tags)

    if record.get('description'):
        lines.append(f"excerpt: {_quote(record['description'])}")

    if record.get('updatedAt'):
        lines.append(f"modified: {_record_date(record, 'updatedAt')}")

    lines.append('---')
    return f"{slug}.md", '\n'.join(lines) + '\n\n' + extract_body(record)

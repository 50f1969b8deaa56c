"""
Front matter and body validation.

``validate_frontmatter`` gates loading: any problem fails the post. The body
checks only produce warnings for the caller to log.
"""

import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import ErrorKind, create_error

TITLE_MIN_LENGTH = 1
TITLE_MAX_LENGTH = 200
EXCERPT_MAX_LENGTH = 500
TAG_MAX_LENGTH = 50
MAX_TAGS = 10
AUTHOR_MAX_LENGTH = 100
CATEGORY_MAX_LENGTH = 50

DATE_REGEX = re.compile(r'^\d{4}-\d{2}-\d{2}$')
SLUG_REGEX = re.compile(r'^[a-z0-9-]+$')

MEDIA_EXTENSIONS = (
    '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp',
    '.mp3', '.wav', '.ogg', '.m4a', '.flac',
)


def _date_string(value: Any) -> Optional[str]:
    # PyYAML turns unquoted 2025-01-15 into a date object
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d')
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value
    return None


def validate_frontmatter(data: Any, today: Callable[[], date] = date.today) -> Tuple[bool, Any]:
    """
    Validate parsed front matter against the post schema.

    Args:
        data: Whatever the YAML parser produced
        today: Clock used for the future-date check

    Returns:
        ``(True, normalized_dict)`` with ``date`` and ``modified`` as
        ``YYYY-MM-DD`` strings, or ``(False, FolioError)`` listing every
        problem found.
    """
    if not isinstance(data, dict):
        return False, create_error(ErrorKind.VALIDATION, "Frontmatter must be a mapping")

    errors: List[str] = []
    normalized: Dict[str, Any] = dict(data)

    title = data.get('title')
    if not title or not isinstance(title, str):
        errors.append("Title is required and must be a string")
    elif not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
        errors.append(f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters")

    draft = data.get('draft', False)
    if not isinstance(draft, bool):
        errors.append("Draft flag must be a boolean")
        draft = False

    if not data.get('date'):
        errors.append("Date is required")
    else:
        date_str = _date_string(data['date'])
        if date_str is None:
            errors.append("Date must be a string or date")
        elif not DATE_REGEX.match(date_str):
            errors.append("Date must be in YYYY-MM-DD format")
        else:
            try:
                published = datetime.strptime(date_str, '%Y-%m-%d').date()
            except ValueError:
                errors.append(f"Date is not a valid calendar date: {date_str}")
            else:
                normalized['date'] = date_str
                if published > today() and not draft:
                    errors.append("Published posts cannot have future dates")

    slug = data.get('slug')
    if slug is not None:
        if not isinstance(slug, str):
            errors.append("Slug must be a string")
        elif not SLUG_REGEX.match(slug):
            errors.append("Slug must contain only lowercase letters, numbers, and hyphens")

    excerpt = data.get('excerpt')
    if excerpt is not None:
        if not isinstance(excerpt, str):
            errors.append("Excerpt must be a string")
        elif len(excerpt) > EXCERPT_MAX_LENGTH:
            errors.append(f"Excerpt must be no more than {EXCERPT_MAX_LENGTH} characters")

    tags = data.get('tags')
    if tags is not None:
        if not isinstance(tags, list):
            errors.append("Tags must be a list")
        else:
            if len(tags) > MAX_TAGS:
                errors.append(f"Cannot have more than {MAX_TAGS} tags")
            for index, tag in enumerate(tags):
                if not isinstance(tag, str):
                    errors.append(f"Tag at index {index} must be a string")
                elif len(tag) > TAG_MAX_LENGTH:
                    errors.append(f'Tag "{tag}" is too long (max {TAG_MAX_LENGTH} characters)')
                elif tag.strip() != tag:
                    errors.append(f'Tag "{tag}" cannot have leading or trailing whitespace')
            hashable = [t for t in tags if isinstance(t, str)]
            if len(set(hashable)) != len(hashable):
                errors.append("Duplicate tags are not allowed")

    modified = data.get('modified')
    if modified is not None:
        modified_str = _date_string(modified)
        if modified_str is None:
            errors.append("Modified date must be a string or date")
        elif not DATE_REGEX.match(modified_str):
            errors.append("Modified date must be in YYYY-MM-DD format")
        else:
            normalized['modified'] = modified_str

    author = data.get('author')
    if author is not None:
        if not isinstance(author, str):
            errors.append("Author must be a string")
        elif len(author) > AUTHOR_MAX_LENGTH:
            errors.append(f"Author name must be no more than {AUTHOR_MAX_LENGTH} characters")

    category = data.get('category')
    if category is not None:
        if not isinstance(category, str):
            errors.append("Category must be a string")
        elif len(category) > CATEGORY_MAX_LENGTH:
            errors.append(f"Category must be no more than {CATEGORY_MAX_LENGTH} characters")

    if errors:
        return False, create_error(
            ErrorKind.VALIDATION,
            f"Frontmatter validation failed: {', '.join(errors)}",
        )
    return True, normalized


_INTERNAL_LINK = re.compile(r'\[[^\]]+\]\((/[^)]+)\)')
_MEDIA_LINK = re.compile(r'!\[[^\]]*\]\(([^)]+)\)')


def validate_markdown_content(content: str) -> List[str]:
    """Return a list of warnings about the Markdown body."""
    warnings = []

    if len(content.strip()) < 10:
        warnings.append("Content is too short (minimum 10 characters)")
    if len(content) > 100000:
        warnings.append("Content is too long (maximum 100,000 characters)")

    for url in _INTERNAL_LINK.findall(content):
        if not (url.startswith('/posts/') or url.startswith('/tags/') or url in ('/', '/about')):
            warnings.append(f"Potentially broken internal link: {url}")

    fences = content.count('```')
    if fences % 2:
        warnings.append("Unclosed code block detected")
    if (content.count('`') - fences * 3) % 2:
        warnings.append("Unclosed inline code detected")

    return warnings


def validate_media_references(content: str) -> List[str]:
    """Return a list of warnings about image and audio references."""
    warnings = []
    for path in _MEDIA_LINK.findall(content):
        if not path.startswith('/') and not path.startswith('http'):
            warnings.append(f"Media path should be absolute or HTTP(S): {path}")
        if not any(ext in path.lower() for ext in MEDIA_EXTENSIONS):
            warnings.append(f"Media file may have invalid extension: {path}")
    return warnings

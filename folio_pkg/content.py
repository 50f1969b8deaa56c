"""
Content repository.

Loads Markdown posts with YAML front matter from a directory behind a
file-system port, validates them, converts their bodies and serves them from
three cache tiers (full posts, metadata only, single post by slug).
"""

import os
import re
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import yaml

from .cache import TTLCache
from .converter import MarkdownConverter
from .errors import ErrorKind, combine, create_error
from .models import Post, PostMeta, TagInfo
from .validation import validate_frontmatter, validate_markdown_content, validate_media_references

POST_EXTENSION = '.md'

# Parsing becomes worth a thread pool at around this many files
PARALLEL_THRESHOLD = 12

FRONTMATTER_PATTERN = re.compile(
    r'\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n(?:\r?\n)?(.*))?\Z',
    re.DOTALL,
)


def create_slug(value: str) -> str:
    """Lowercase ``value`` and collapse anything outside ``[a-z0-9-]`` into hyphens."""
    slug = re.sub(r'[^a-z0-9-]', '-', value.lower())
    return re.sub(r'-+', '-', slug)


def slug_from_filename(filename: str) -> str:
    return create_slug(os.path.splitext(os.path.basename(filename))[0])


def extract_frontmatter(text: str):
    """Split a post file into ``(frontmatter_text, body)``.

    One blank line between the closing delimiter and the body is a separator
    and is dropped; everything after it is returned untouched.
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return False, create_error(ErrorKind.PARSE, "Invalid frontmatter format")
    return True, (match.group(1), match.group(2) or '')


def parse_post_meta(text: str, default_slug: str, today: Callable[[], date] = date.today):
    """Parse and validate a post file into a :class:`PostMeta`."""
    success, result = extract_frontmatter(text)
    if not success:
        return False, result
    frontmatter, body = result

    try:
        data = yaml.safe_load(frontmatter)
    except yaml.YAMLError as e:
        return False, create_error(ErrorKind.PARSE, f"Failed to parse frontmatter YAML: {e}", e)

    success, meta = validate_frontmatter(data, today=today)
    if not success:
        return False, meta

    return True, PostMeta(
        title=meta['title'],
        date=meta['date'],
        slug=meta.get('slug') or default_slug,
        raw_body=body,
        excerpt=meta.get('excerpt'),
        tags=tuple(meta.get('tags') or ()),
        modified=meta.get('modified'),
        draft=meta.get('draft', False),
    )


def format_date(date_str):
    """Format a YYYY-MM-DD string for display."""
    try:
        return datetime.strptime(date_str, '%Y-%m-%d').strftime('%B %d, %Y')
    except (TypeError, ValueError):
        return str(date_str)


class ContentRepository:
    """Read-only access to the posts directory.

    Every public method returns ``(success, value_or_error)``. Caches are
    only invalidated by :meth:`clear_caches` or expiry, never by reads.
    """

    def __init__(self, file_system, posts_dir, converter=None, canonical_tags: Sequence[str] = (),
                 enable_validation=True, posts_cache=None, metadata_cache=None, post_cache=None,
                 max_workers=None, today: Callable[[], date] = date.today):
        self.file_system = file_system
        self.posts_dir = posts_dir
        self.converter = converter or MarkdownConverter()
        self.canonical_tags = {tag.lower(): tag for tag in canonical_tags}
        self.enable_validation = enable_validation
        self.posts_cache = posts_cache if posts_cache is not None else TTLCache()
        self.metadata_cache = metadata_cache if metadata_cache is not None else TTLCache()
        self.post_cache = post_cache if post_cache is not None else TTLCache()
        self.max_workers = max_workers or min(32, (os.cpu_count() or 1) + 4)
        self.today = today
        self.logger = logging.getLogger('Folio.content')

    # Loading

    def _list_post_files(self):
        success, result = self.file_system.read_dir(self.posts_dir)
        if not success:
            return False, result
        return True, [name for name in result if name.endswith(POST_EXTENSION)]

    def _read_meta(self, filename):
        path = os.path.join(self.posts_dir, filename)
        success, text = self.file_system.read_file(path)
        if not success:
            return False, text
        success, meta = parse_post_meta(text, slug_from_filename(filename), today=self.today)
        if not success:
            self.logger.error(f"Failed to parse {path}: {meta.message}")
            return False, create_error(meta.kind, f"{filename}: {meta.message}", meta.cause, path=path)
        if self.enable_validation:
            for warning in validate_markdown_content(meta.raw_body) + validate_media_references(meta.raw_body):
                self.logger.warning(f"{path}: {warning}")
        return True, meta

    def _read_post(self, filename):
        success, meta = self._read_meta(filename)
        if not success:
            return False, meta
        success, html = self.converter(meta.raw_body)
        if not success:
            path = os.path.join(self.posts_dir, filename)
            return False, create_error(ErrorKind.PARSE, f"{filename}: {html.message}", html.cause, path=path)
        return True, Post.from_meta(meta, html, format_date(meta.date))

    def _parse_all(self, filenames: List[str], parse: Callable):
        """Parse every file; the batch fails as soon as one file does."""
        if len(filenames) >= PARALLEL_THRESHOLD:
            self.logger.debug(f"Using thread pool for {len(filenames)} files with {self.max_workers} workers")
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(parse, filenames))
        else:
            results = [parse(name) for name in filenames]
        return combine(results)

    def _load(self, cache, key, parse):
        cached = cache.get(key)
        if cached is not None:
            self.logger.debug(f"Using cached {key}")
            return True, cached

        success, filenames = self._list_post_files()
        if not success:
            return False, filenames
        if not filenames:
            self.logger.warning(f"No markdown files found in {self.posts_dir}")

        success, items = self._parse_all(filenames, parse)
        if not success:
            self.logger.error(f"Failed to load posts: {items.message}")
            return False, items

        duplicate = self._find_duplicate_slug(items)
        if duplicate is not None:
            return False, create_error(ErrorKind.VALIDATION, f"Duplicate slug: {duplicate}")

        ordered = sorted(items, key=lambda p: p.date, reverse=True)
        cache.set(key, ordered)
        self.logger.info(f"Loaded {len(ordered)} posts from {self.posts_dir}")
        return True, ordered

    @staticmethod
    def _find_duplicate_slug(items) -> Optional[str]:
        seen = set()
        for item in items:
            if item.slug in seen:
                return item.slug
            seen.add(item.slug)
        return None

    def load_all(self):
        """All posts with rendered bodies, newest first."""
        return self._load(self.posts_cache, 'posts', self._read_post)

    def load_metadata_only(self):
        """All posts without body conversion, newest first."""
        return self._load(self.metadata_cache, 'metadata', self._read_meta)

    def get_by_slug(self, slug):
        cached = self.post_cache.get(slug)
        if cached is not None:
            return True, cached

        filename = f"{slug}{POST_EXTENSION}"
        if self.file_system.exists(os.path.join(self.posts_dir, filename)):
            success, post = self._read_post(filename)
            if success and post.slug == slug:
                self.post_cache.set(slug, post)
                return True, post
            self.logger.debug(f"Direct lookup for {slug} missed, scanning all posts")

        success, posts = self.load_all()
        if not success:
            return False, posts
        for post in posts:
            if post.slug == slug:
                self.post_cache.set(slug, post)
                return True, post
        return False, create_error(ErrorKind.NOT_FOUND, f"Post not found: {slug}")

    # Tags and search

    def _aggregate_tags(self, posts: Iterable[PostMeta]) -> Dict[str, dict]:
        aggregates: Dict[str, dict] = {}
        for post in posts:
            seen = set()
            for tag in post.tags:
                key = tag.lower()
                if key in seen:
                    continue
                seen.add(key)
                entry = aggregates.get(key)
                if entry is None:
                    aggregates[key] = {
                        'name': self.canonical_tags.get(key, tag),
                        'count': 1,
                        'slugs': [post.slug],
                    }
                else:
                    entry['count'] += 1
                    entry['slugs'].append(post.slug)
        return aggregates

    def get_all_tags(self):
        """Tags with post counts, most used first; ties keep first-seen order."""
        success, posts = self.load_metadata_only()
        if not success:
            return False, posts
        tags = [
            TagInfo(name=entry['name'], count=entry['count'], slugs=tuple(entry['slugs']))
            for entry in self._aggregate_tags(posts).values()
        ]
        return True, sorted(tags, key=lambda t: t.count, reverse=True)

    def tag_names(self):
        """Map of lowercased tag to its canonical display name."""
        success, posts = self.load_metadata_only()
        if not success:
            return False, posts
        return True, {key: entry['name'] for key, entry in self._aggregate_tags(posts).items()}

    def get_by_tag(self, tag):
        success, posts = self.load_metadata_only()
        if not success:
            return False, posts
        wanted = tag.lower()
        return True, [post for post in posts if any(t.lower() == wanted for t in post.tags)]

    def search(self, query):
        success, posts = self.load_all()
        if not success:
            return False, posts
        needle = query.lower()
        return True, [
            post for post in posts
            if needle in post.title.lower()
            or needle in post.content.lower()
            or (post.excerpt and needle in post.excerpt.lower())
            or any(needle in tag.lower() for tag in post.tags)
        ]

    def clear_caches(self):
        self.posts_cache.clear()
        self.metadata_cache.clear()
        self.post_cache.clear()

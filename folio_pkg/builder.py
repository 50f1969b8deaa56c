"""
Static site builder.

Enumerates every route the site answers, renders each one through its
handler twice (full document, then the navigation fragment for HTML routes)
and writes both variants into an output directory that any static file host
can serve.
"""

import os
import re
import time
import logging
from typing import Dict, List
from urllib.parse import quote, unquote, urljoin, urlsplit

import csscompressor
import rjsmin

from .errors import ErrorKind, create_error
from .models import BuildReport, RouteContext, RouteEntry, RouteResponse

FRAGMENT_FILE = 'fragment.html'
INDEX_FILE = 'index.html'

# (path, handler name, is_html)
FIXED_ROUTES = (
    ('/', 'home', True),
    ('/about', 'about', True),
    ('/tags', 'tags', True),
    ('/rss', 'rss_page', True),
    ('/search', 'search', True),
    ('/feed.xml', 'rss', False),
    ('/rss.xml', 'rss', False),
    ('/sitemap.xml', 'sitemap', False),
    ('/robots.txt', 'robots', False),
    ('/images/og-default.svg', 'og_image_default', False),
)

# Only built when the handler table provides them
OPTIONAL_ROUTES = (
    ('/.well-known/site.standard.publication', 'atproto_verification', False),
)

REQUIRED_HANDLERS = tuple(name for _, name, _ in FIXED_ROUTES) + ('post', 'og_image_post', 'tag_posts')

# hx-get attributes only; data-hx-get, x-hx-get and hx-get-foo are left alone
_HX_GET = re.compile(r'(?<![\w-])hx-get="(/[^"]*)"')


def post_path(slug: str) -> str:
    return f"/posts/{slug}"


def tag_path(name: str) -> str:
    return f"/tags/{quote(name, safe='')}"


def og_image_path(slug: str) -> str:
    return f"/images/og/{slug}.svg"


def fragment_url(path: str) -> str:
    """The fragment resource for a site-relative path."""
    cut = min((i for i in (path.find('?'), path.find('#')) if i >= 0), default=len(path))
    base, suffix = path[:cut], path[cut:]
    if base.endswith('/' + FRAGMENT_FILE):
        return path
    if base == '/':
        return f"/{FRAGMENT_FILE}{suffix}"
    return f"{base.rstrip('/')}/{FRAGMENT_FILE}{suffix}"


def rewrite_fragment_links(html: str) -> str:
    """Point every internal ``hx-get`` at the sibling fragment file."""
    return _HX_GET.sub(lambda m: f'hx-get="{fragment_url(m.group(1))}"', html)


def synthesize_context(path: str, base_url: str, fragment: bool = False) -> RouteContext:
    url = urljoin(base_url, path)
    headers = {'HX-Request': 'true'} if fragment else {}
    return RouteContext(pathname=urlsplit(url).path, url=url, headers=headers)


def _route_segments(route_path: str) -> List[str]:
    return [unquote(segment) for segment in route_path.strip('/').split('/') if segment]


def _contained(output_dir: str, segments: List[str]):
    root = os.path.abspath(output_dir)
    target = os.path.abspath(os.path.join(root, *segments))
    if os.path.commonpath([root, target]) != root or target == root:
        return False, create_error(ErrorKind.VALIDATION, f"Route escapes the output directory: /{'/'.join(segments)}")
    return True, os.path.join(output_dir, os.path.relpath(target, root))


def output_path(output_dir: str, route_path: str, is_html: bool = None):
    """
    Map a route to the file it is written to.

    ``/`` becomes ``index.html``; a non-HTML route keeps its path; any other
    route becomes ``<path>/index.html``, whatever its last segment looks like.
    When ``is_html`` is not given it is inferred from the last segment's
    extension, and an explicit ``.html`` path is written as is.

    Returns:
        ``(True, file_path)`` or ``(False, FolioError)`` for a path that would
        land outside ``output_dir``
    """
    segments = _route_segments(route_path)
    if not segments:
        return True, os.path.join(output_dir, INDEX_FILE)

    extension = os.path.splitext(segments[-1])[1].lower()
    if is_html is None:
        if extension == '.html':
            return _contained(output_dir, segments)
        is_html = extension == ''

    if not is_html:
        return _contained(output_dir, segments)
    return _contained(output_dir, segments + [INDEX_FILE])


def fragment_path(output_dir: str, route_path: str):
    return _contained(output_dir, _route_segments(route_path) + [FRAGMENT_FILE])


class StaticBuilder:
    def __init__(self, repository, routes: Dict, file_writer, public_dir, file_system=None, minify=False):
        """
        Args:
            repository: ``ContentRepository`` the route table is derived from
            routes: Handler table keyed by logical route name
            file_writer: Writer port for the output directory
            public_dir: Static assets copied verbatim into the output root
            file_system: Reader port for ``public_dir``; defaults to the
                repository's
            minify: Also write ``.min.css`` / ``.min.js`` next to copied assets
        """
        self.repository = repository
        self.routes = routes
        self.file_writer = file_writer
        self.file_system = file_system or repository.file_system
        self.public_dir = public_dir
        self.minify = minify
        self.logger = logging.getLogger('Folio.builder')

    def build_route_table(self, posts, tags) -> List[RouteEntry]:
        """Every route the site answers, given the current posts and tags."""
        entries = [
            RouteEntry(path, self.routes[name], is_html)
            for path, name, is_html in FIXED_ROUTES + OPTIONAL_ROUTES
            if name in self.routes
        ]

        for post in posts:
            if 'post' in self.routes:
                entries.append(RouteEntry(post_path(post.slug), self.routes['post'], True))
            if 'og_image_post' in self.routes:
                entries.append(RouteEntry(og_image_path(post.slug), self.routes['og_image_post'], False))

        if 'tag_posts' in self.routes:
            for tag in tags:
                entries.append(RouteEntry(tag_path(tag.name), self.routes['tag_posts'], True))

        return entries

    def _render(self, entry: RouteEntry, base_url: str, fragment: bool):
        response = entry.handler(synthesize_context(entry.path, base_url, fragment))
        if isinstance(response, RouteResponse):
            if response.status >= 400:
                return False, create_error(ErrorKind.RENDER, f"handler answered HTTP {response.status}")
            return True, response.body
        return True, str(response)

    def _write(self, path_result, body, route_label, report):
        success, path = path_result
        if not success:
            report.errors.append(f"{route_label}: {path.message}")
            return False
        success, error = self.file_writer.write_file(path, body)
        if not success:
            report.errors.append(f"{route_label}: {error.message}")
            return False
        self.logger.debug(f"Generated: {path}")
        return True

    def _build_route(self, entry: RouteEntry, output_dir, base_url, report: BuildReport):
        try:
            success, body = self._render(entry, base_url, fragment=False)
            if not success:
                report.errors.append(f"{entry.path}: {body.message}")
                return
            if entry.is_html:
                body = rewrite_fragment_links(body)
            if self._write(output_path(output_dir, entry.path, entry.is_html), body, entry.path, report):
                report.pages += 1

            if not entry.is_html:
                return

            success, fragment = self._render(entry, base_url, fragment=True)
            if not success:
                report.errors.append(f"{entry.path} (fragment): {fragment.message}")
                return
            fragment = rewrite_fragment_links(fragment)
            if self._write(fragment_path(output_dir, entry.path), fragment, f"{entry.path} (fragment)", report):
                report.fragments += 1
        except Exception as e:
            # Recorded per route; the remaining routes still build
            report.errors.append(f"{entry.path}: {e}")
            self.logger.error(f"Failed to render {entry.path}: {e}", exc_info=True)

    def _walk(self, root, prefix=''):
        """Relative paths of every file below ``root``."""
        success, names = self.file_system.read_dir(os.path.join(root, prefix) if prefix else root)
        if not success:
            return []
        files = []
        for name in names:
            relative = os.path.join(prefix, name) if prefix else name
            is_dir, _ = self.file_system.read_dir(os.path.join(root, relative))
            if is_dir:
                files.extend(self._walk(root, relative))
            else:
                files.append(relative)
        return files

    def minify_assets(self, output_dir, report: BuildReport = None) -> int:
        """Write minified siblings for the CSS and JS files in the public directory."""
        minified = 0
        for relative in self._walk(self.public_dir):
            if relative.endswith('.css') and not relative.endswith('.min.css'):
                compress, target = csscompressor.compress, relative[:-4] + '.min.css'
            elif relative.endswith('.js') and not relative.endswith('.min.js'):
                compress, target = rjsmin.jsmin, relative[:-3] + '.min.js'
            else:
                continue

            success, text = self.file_system.read_file(os.path.join(self.public_dir, relative))
            if success:
                success, text = self.file_writer.write_file(os.path.join(output_dir, target), compress(text))
            if not success:
                self.logger.error(f"Failed to minify {relative}: {text.message}")
                if report is not None:
                    report.errors.append(f"{relative}: {text.message}")
                continue

            minified += 1
            self.logger.debug(f"Minified: {relative}")
        return minified

    def build(self, output_dir, base_url):
        """
        Build the static mirror of the site into ``output_dir``.

        Returns ``(True, BuildReport)`` even when individual routes fail;
        cleaning the output directory, copying assets or loading content
        failing returns ``(False, FolioError)``.
        """
        start_time = time.time()
        report = BuildReport()

        self.logger.info(f"Cleaning {output_dir}")
        for step in (self.file_writer.clean, self.file_writer.ensure_dir):
            success, error = step(output_dir)
            if not success:
                return False, error

        if self.file_system.exists(self.public_dir):
            self.logger.info(f"Copying {self.public_dir} to {output_dir}")
            success, copied = self.file_writer.copy_dir(self.public_dir, output_dir)
            if not success:
                return False, copied
            report.assets = copied
            if self.minify:
                self.logger.info(f"Minified {self.minify_assets(output_dir, report)} assets")
        else:
            self.logger.warning(f"Public directory {self.public_dir} not found, no assets copied")

        success, posts = self.repository.load_all()
        if not success:
            return False, posts
        success, tags = self.repository.get_all_tags()
        if not success:
            return False, tags

        for name in REQUIRED_HANDLERS:
            if name not in self.routes:
                report.errors.append(f"{name}: no handler registered")

        entries = self.build_route_table(posts, tags)
        self.logger.info(f"Rendering {len(entries)} routes")
        for entry in entries:
            self._build_route(entry, output_dir, base_url, report)

        elapsed = time.time() - start_time
        self.logger.info(
            f"Build complete: {report.pages} pages, {report.fragments} fragments, "
            f"{report.assets} assets, {len(report.errors)} errors in {elapsed:.2f} seconds"
        )
        return True, report

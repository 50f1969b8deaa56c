"""
Default route handlers.

``create_route_handlers`` returns the handler table the static builder walks.
HTML pages are component trees wrapped in the ``document.html`` template;
with ``HX-Request: true`` only the inner markup is returned.
"""

import re
import html
import logging
from datetime import datetime
from email.utils import formatdate
from typing import Dict
from urllib.parse import unquote
from xml.sax.saxutils import escape

from jinja2 import Environment, PackageLoader, select_autoescape

from .builder import og_image_path, post_path, tag_path
from .components import About, Layout, NotFound, PostList, PostView, RSSSubscription, SearchResults, TagIndex
from .errors import ErrorKind, format_error
from .mapping import publication_uri
from .models import RouteContext, RouteResponse
from .render import h, raw, render_safe

RSS_ITEMS = 20

XML_TYPE = 'application/xml; charset=utf-8'
RSS_TYPE = 'application/rss+xml; charset=utf-8'
TEXT_TYPE = 'text/plain; charset=utf-8'
SVG_TYPE = 'image/svg+xml'


def create_template_environment():
    return Environment(
        loader=PackageLoader('folio_pkg', 'templates'),
        autoescape=select_autoescape(['html', 'xml']),
    )


def _plain(text):
    """Strip tags and collapse whitespace."""
    text = html.unescape(str(text))
    text = re.sub(r'<.*?>', '', text)
    return re.sub(r'\s+', ' ', text).strip()


def _wrap_words(text, width=28, max_lines=4):
    lines, current = [], ''
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if len(candidate) > width and current:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    if len(lines) > max_lines:
        lines = lines[:max_lines]
        lines[-1] = lines[-1][:width - 1] + '…'
    return lines


def og_image_svg(title, subtitle=''):
    """A 1200x630 social card with the title set in a few lines."""
    tspans = ''.join(
        f'<tspan x="80" dy="{0 if i == 0 else 76}">{escape(line)}</tspan>'
        for i, line in enumerate(_wrap_words(title))
    )
    return (
        '<svg xmlns="http://www.w3.org/2000/svg" width="1200" height="630" viewBox="0 0 1200 630">'
        '<rect width="1200" height="630" fill="#111827"/>'
        f'<text x="80" y="220" fill="#f9fafb" font-family="sans-serif" font-size="64" font-weight="700">{tspans}</text>'
        f'<text x="80" y="570" fill="#9ca3af" font-family="sans-serif" font-size="32">{escape(subtitle)}</text>'
        '</svg>'
    )


class SiteHandlers:
    """The handlers behind every route, bound to one repository and config."""

    def __init__(self, repository, config, environment=None):
        self.repository = repository
        self.config = config
        self.site_url = config.site_url.rstrip('/')
        self.env = environment or create_template_environment()
        self.logger = logging.getLogger('Folio.handlers')

    # Page plumbing

    def _page(self, ctx: RouteContext, title, description, body, og_image='/images/og-default.svg',
              og_type='website', status=200):
        success, inner = render_safe(body)
        if not success:
            self.logger.error(f"Failed to render {ctx.pathname}: {inner.message}")
            return RouteResponse(format_error(inner), TEXT_TYPE, 500)

        if ctx.is_fragment:
            return RouteResponse(inner, status=status)

        success, chrome = render_safe(h(Layout, {
            'path': ctx.pathname,
            'site_title': self.config.site_title,
            'children': raw(inner),
        }))
        if not success:
            return RouteResponse(format_error(chrome), TEXT_TYPE, 500)

        atproto = self.config.atproto
        document = self.env.get_template('document.html').render(
            title=title,
            description=description,
            site_title=self.config.site_title,
            site_url=self.site_url,
            canonical_url=f"{self.site_url}{ctx.pathname}",
            og_image=f"{self.site_url}{og_image}",
            og_type=og_type,
            publication_uri=publication_uri(atproto.did) if atproto else None,
            content=chrome,
        )
        return RouteResponse(document, status=status)

    def _not_found(self, ctx, message=None):
        return self._page(ctx, 'Not found', self.config.site_description,
                          h(NotFound, {'message': message}), status=404)

    def _failure(self, ctx, error):
        self.logger.error(f"{ctx.pathname}: {error.message}")
        return RouteResponse(format_error(error), TEXT_TYPE, 500)

    def _tag_names(self):
        success, names = self.repository.tag_names()
        return names if success else {}

    # HTML routes

    def home(self, ctx: RouteContext):
        success, posts = self.repository.load_all()
        if not success:
            return self._failure(ctx, posts)
        return self._page(ctx, self.config.site_title, self.config.site_description,
                          h(PostList, {'posts': posts, 'tag_names': self._tag_names()}))

    def about(self, ctx: RouteContext):
        return self._page(ctx, 'About', self.config.site_description, h(About, {
            'site_title': self.config.site_title,
            'site_description': self.config.site_description,
        }))

    def tags(self, ctx: RouteContext):
        success, tags = self.repository.get_all_tags()
        if not success:
            return self._failure(ctx, tags)
        return self._page(ctx, 'Tags', f"All tags on {self.config.site_title}", h(TagIndex, {'tags': tags}))

    def tag_posts(self, ctx: RouteContext):
        tag = unquote(ctx.pathname[len('/tags/'):].strip('/'))
        success, tagged = self.repository.get_by_tag(tag)
        if not success:
            return self._failure(ctx, tagged)
        if not tagged:
            return self._not_found(ctx, f"No posts are tagged {tag}.")

        success, posts = self.repository.load_all()
        if not success:
            return self._failure(ctx, posts)
        slugs = {meta.slug for meta in tagged}
        posts = [post for post in posts if post.slug in slugs]

        names = self._tag_names()
        display = names.get(tag.lower(), tag)
        return self._page(ctx, f"Posts tagged {display}", f"Posts tagged {display}",
                          h(PostList, {'posts': posts, 'active_tag': display, 'tag_names': names}))

    def post(self, ctx: RouteContext):
        slug = unquote(ctx.pathname[len('/posts/'):].strip('/'))
        success, post = self.repository.get_by_slug(slug)
        if not success:
            if post.kind == ErrorKind.NOT_FOUND:
                return self._not_found(ctx, f"No post named {slug}.")
            return self._failure(ctx, post)
        return self._page(ctx, post.title, post.excerpt or self.config.site_description,
                          h(PostView, {'post': post, 'tag_names': self._tag_names()}),
                          og_image=og_image_path(post.slug), og_type='article')

    def search(self, ctx: RouteContext):
        query = (ctx.params.get('q') or [''])[0].strip()
        if not query:
            return self._page(ctx, 'Search', f"Search {self.config.site_title}", h(SearchResults, {'query': None}))

        success, posts = self.repository.search(query)
        if not success:
            return self._failure(ctx, posts)
        return self._page(ctx, f'Search: "{query}"', f"Search results for {query}",
                          h(SearchResults, {'query': query, 'posts': posts}))

    def rss_page(self, ctx: RouteContext):
        return self._page(ctx, 'RSS', f"Subscribe to {self.config.site_title}",
                          h(RSSSubscription, {'site_url': self.site_url}))

    # Feeds and crawler files

    def rss(self, ctx: RouteContext):
        """RSS 2.0 feed of the newest posts."""
        success, posts = self.repository.load_all()
        if not success:
            return self._failure(ctx, posts)

        site_name = self.config.site_title
        rss_content = f'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>{escape(site_name)}</title>
<link>{escape(self.site_url)}</link>
<description>{escape(self.config.site_description or f"Latest posts from {site_name}")}</description>
<lastBuildDate>{formatdate()}</lastBuildDate>
'''
        for post in posts[:RSS_ITEMS]:
            link = f"{self.site_url}{post_path(post.slug)}"
            description = escape(_plain(post.excerpt or post.title))
            post_date = datetime.strptime(post.date, '%Y-%m-%d')
            rss_content += f'''
<item>
<title>{escape(post.title)}</title>
<link>{escape(link)}</link>
<description>{description}</description>
<pubDate>{formatdate(post_date.timestamp())}</pubDate>
<guid>{escape(link)}</guid>
</item>'''

        rss_content += '''
</channel>
</rss>'''
        return RouteResponse(rss_content, RSS_TYPE)

    def _sitemap_entry(self, path, lastmod):
        return f'''<url>
<loc>{escape(self.site_url + path)}</loc>
<lastmod>{lastmod}</lastmod>
</url>
'''

    def sitemap(self, ctx: RouteContext):
        success, posts = self.repository.load_metadata_only()
        if not success:
            return self._failure(ctx, posts)
        success, tags = self.repository.get_all_tags()
        if not success:
            return self._failure(ctx, tags)

        today = datetime.now().strftime('%Y-%m-%d')
        newest = posts[0].date if posts else today

        sitemap_content = '''<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
'''
        sitemap_content += self._sitemap_entry('/', newest)
        sitemap_content += self._sitemap_entry('/about', today)
        sitemap_content += self._sitemap_entry('/tags', newest)
        for post in posts:
            sitemap_content += self._sitemap_entry(post_path(post.slug), post.modified or post.date)
        for tag in tags:
            sitemap_content += self._sitemap_entry(tag_path(tag.name), newest)
        sitemap_content += '</urlset>'
        return RouteResponse(sitemap_content, XML_TYPE)

    def robots(self, ctx: RouteContext):
        robots_content = f"""User-agent: *
Allow: /

Sitemap: {self.site_url}/sitemap.xml
"""
        return RouteResponse(robots_content, TEXT_TYPE)

    def og_image_default(self, ctx: RouteContext):
        return RouteResponse(og_image_svg(self.config.site_title, self.site_url), SVG_TYPE)

    def og_image_post(self, ctx: RouteContext):
        slug = ctx.pathname[len('/images/og/'):]
        if slug.endswith('.svg'):
            slug = slug[:-len('.svg')]
        success, post = self.repository.get_by_slug(unquote(slug))
        if not success:
            return RouteResponse(og_image_svg('Not found', self.config.site_title), SVG_TYPE, 404)
        return RouteResponse(og_image_svg(post.title, self.config.site_title), SVG_TYPE)

    def atproto_verification(self, ctx: RouteContext):
        """The publication AT-URI, served at ``/.well-known/site.standard.publication``."""
        return RouteResponse(publication_uri(self.config.atproto.did), TEXT_TYPE)

    def table(self) -> Dict:
        handlers = {
            'home': self.home,
            'about': self.about,
            'tags': self.tags,
            'tag_posts': self.tag_posts,
            'post': self.post,
            'search': self.search,
            'rss_page': self.rss_page,
            'rss': self.rss,
            'sitemap': self.sitemap,
            'robots': self.robots,
            'og_image_default': self.og_image_default,
            'og_image_post': self.og_image_post,
        }
        if self.config.atproto is not None:
            handlers['atproto_verification'] = self.atproto_verification
        return handlers


def create_route_handlers(repository, config) -> Dict:
    return SiteHandlers(repository, config).table()

"""
Page components.

Each component takes a props dict and returns a node tree for
:func:`folio_pkg.render.render`. Links navigate with ``hx-get`` into
``#content-area`` and fall back to plain ``href`` navigation.
"""

from .builder import post_path, tag_path
from .render import Fragment, h, raw

CONTENT_TARGET = '#content-area'


def nav_props(href, **extra):
    props = {'href': href, 'get': href, 'target': CONTENT_TARGET, 'swap': 'innerHTML', 'pushUrl': 'true'}
    props.update(extra)
    return props


def NavLink(props):
    href = props['href']
    active = props.get('current_path') == href
    return h('a', nav_props(href, class_='link active' if active else 'link'), props.get('children'))


def Navigation(props):
    current = props.get('current_path', '/')
    return h('nav', None,
             h('div', {'class_': 'nav-links'},
               h(NavLink, {'href': '/', 'current_path': current, 'children': 'Home'}),
               h(NavLink, {'href': '/tags', 'current_path': current, 'children': 'Tags'}),
               h(NavLink, {'href': '/about', 'current_path': current, 'children': 'About'}),
               h(NavLink, {'href': '/search', 'current_path': current, 'children': 'Search'}),
               h(NavLink, {'href': '/rss', 'current_path': current, 'children': 'RSS'})))


def Layout(props):
    """Site chrome around the swappable content area."""
    return h('div', {'id': 'app-layout', 'behavior': 'boost'},
             h('header', {'id': 'site-header'},
               h(Navigation, {'current_path': props.get('path', '/')})),
             h('main', {'id': 'content-main', 'class_': 'content-main'},
               h('div', {'id': 'content-area', 'class_': 'htmx-swappable'}, props.get('children'))),
             h('footer', None, h('p', None, props.get('site_title', ''))))


def TagLinks(props):
    """Comma-separated tag links, linked by canonical name."""
    names = props.get('tag_names') or {}
    links = []
    for index, tag in enumerate(props.get('tags', ())):
        if index:
            links.append(', ')
        href = tag_path(names.get(tag.lower(), tag))
        links.append(h('a', nav_props(href, rel='tag'), tag))
    return h(Fragment, None, links)


def PostList(props):
    posts = props.get('posts', ())
    active_tag = props.get('active_tag')
    label = f"Posts tagged {active_tag}" if active_tag else 'Latest posts'

    back = None
    if active_tag:
        back = h('p', None, h('a', nav_props('/tags'), '← View all tags'))

    if not posts:
        return h('section', {'aria-label': label}, back, h('p', None, 'No posts found.'))

    items = []
    for post in posts:
        byline = h('time', {'datetime': post.date}, post.formatted_date) if post.formatted_date else None
        tags = None
        if post.tags:
            tags = h('p', None, h('small', None, 'Tags: ',
                                  h(TagLinks, {'tags': post.tags, 'tag_names': props.get('tag_names')})))
        items.append(h('li', None,
                       h('article', None,
                         h('h2', None, h('a', nav_props(post_path(post.slug)), post.title)),
                         h('p', None, byline),
                         h('p', None, post.excerpt) if post.excerpt else None,
                         tags),
                       h('hr')))
    return h('section', {'aria-label': label}, back, h('ul', None, items))


def PostView(props):
    post = props['post']
    return h('article', {'class_': 'post'},
             h('header', None,
               h('h1', None, post.title),
               h('p', None, h('time', {'datetime': post.date}, post.formatted_date or post.date)),
               h('p', None, h(TagLinks, {'tags': post.tags, 'tag_names': props.get('tag_names')})) if post.tags else None),
             h('div', {'class_': 'post-content'}, raw(post.content)),
             h('footer', None, h('p', None, h('a', nav_props('/'), '← Back to all posts'))))


def TagIndex(props):
    tags = props.get('tags', ())
    if not tags:
        return h('section', {'aria-label': 'Tags'}, h('h1', None, 'Tags'), h('p', None, 'No tags yet.'))
    return h('section', {'aria-label': 'Tags'},
             h('h1', None, 'Tags'),
             h('ul', {'class_': 'tag-list'},
               [h('li', None,
                  h('a', nav_props(tag_path(tag.name), rel='tag'), tag.name),
                  f" ({tag.count})")
                for tag in tags]))


def About(props):
    return h('section', {'aria-label': 'About'},
             h('h1', None, f"About {props.get('site_title', '')}".strip()),
             h('p', None, props.get('site_description', '')),
             h('p', None, 'Posts are also published as ',
               h('a', {'href': 'https://standard.site'}, 'standard.site'),
               ' records and can be followed through the ',
               h('a', {'href': '/feed.xml'}, 'RSS feed'), '.'))


def NotFound(props):
    return h('section', {'aria-label': 'Not found'},
             h('h1', None, 'Not found'),
             h('p', None, props.get('message') or 'The page you are looking for does not exist.'),
             h('p', None, h('a', nav_props('/'), 'Go home')))


def SearchForm(props):
    return h('form', {'action': '/search', 'method': 'get', 'role': 'search'},
             h('label', {'for_': 'search-query'}, 'Search posts'),
             h('input', {'id': 'search-query', 'type': 'search', 'name': 'q', 'value': props.get('query') or None}),
             h('button', {'type': 'submit'}, 'Search'))


def SearchResults(props):
    query = props.get('query')
    form = h(SearchForm, {'query': query})
    if not query:
        return h('section', {'aria-label': 'Search'},
                 h('h1', None, 'Search'),
                 form,
                 h('p', None, 'Please provide a search query.'),
                 h('p', None, h('a', nav_props('/'), '← Back to home')))

    posts = props.get('posts', ())
    if not posts:
        summary = f'No posts found for "{query}".'
    else:
        summary = f'Found {len(posts)} post{"" if len(posts) == 1 else "s"} for "{query}".'

    items = [h('li', None,
               h('article', None,
                 h('h2', None, h('a', nav_props(post_path(post.slug)), post.title)),
                 h('p', None, h('time', {'datetime': post.date}, post.formatted_date or post.date)),
                 h('p', None, post.excerpt) if post.excerpt else None))
             for post in posts]
    return h('section', {'aria-label': 'Search results'},
             h('h1', None, 'Search Results'),
             form,
             h('p', None, summary),
             h('ul', {'class_': 'post-list'}, items) if items else None)


def RSSSubscription(props):
    """Feed URLs with a note on how to add them to a reader."""
    base_url = props.get('site_url', '')
    feeds = [(f"{base_url}/feed.xml", 'Main feed'), (f"{base_url}/rss.xml", 'Same feed, legacy address')]
    return h('section', {'aria-label': 'RSS subscriptions', 'class_': 'rss-content'},
             h('h1', None, 'RSS Subscriptions'),
             h('p', None, 'RSS lets you subscribe to updates in your favorite reader. '
                          'Copy a feed URL and add it to your reader.'),
             h('ul', {'class_': 'feed-list'},
               [h('li', None,
                  h('a', {'class_': 'feed-link', 'href': url, 'rel': 'alternate', 'type': 'application/rss+xml'}, url),
                  f" ({label})")
                for url, label in feeds]),
             h('h2', None, 'How to use these feeds'),
             h('ul', None,
               h('li', None, 'Feedly or Inoreader: paste the URL into "Add Content".'),
               h('li', None, 'NetNewsWire or Reeder: choose New Subscription, then paste the URL.'),
               h('li', None, 'Any other reader: look for an option to add a feed and paste the URL.')))

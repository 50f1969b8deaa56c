"""
Virtual-node renderer.

Turns a tree of nodes into HTML text. A node is one of:

* ``None`` or a bool: renders nothing
* ``str``, ``int`` or ``float``: HTML-escaped text
* :class:`Raw`: pre-sanitized markup emitted verbatim
* ``list`` or ``tuple``: children rendered and concatenated
* :class:`Element`: a native tag, a component callable, or a :data:`Fragment`

Anything else is coerced with ``str()`` and escaped.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Tuple, Union

from .errors import ErrorKind, create_error


class _FragmentMarker:
    def __repr__(self):
        return 'Fragment'


Fragment = _FragmentMarker()


@dataclass(frozen=True)
class Raw:
    content: str


@dataclass(frozen=True)
class Element:
    tag: Union[str, Callable[..., Any], _FragmentMarker]
    props: Dict[str, Any] = field(default_factory=dict)


# Semantic prop names and the interactive-navigation attributes they become
ALIASES = {
    'get': 'hx-get',
    'post': 'hx-post',
    'put': 'hx-put',
    'patch': 'hx-patch',
    'delete': 'hx-delete',
    'target': 'hx-target',
    'swap': 'hx-swap',
    'pushUrl': 'hx-push-url',
    'push_url': 'hx-push-url',
    'trigger': 'hx-trigger',
    'class_': 'class',
    'for_': 'for',
}

VOID_ELEMENTS = frozenset({
    'area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input',
    'link', 'meta', 'param', 'source', 'track', 'wbr',
})

_CAMEL = re.compile(r'[A-Z]')


def escape_html(text: str) -> str:
    return (text.replace('&', '&amp;')
                .replace('<', '&lt;')
                .replace('>', '&gt;')
                .replace('"', '&quot;')
                .replace("'", '&#39;'))


def h(tag, props=None, *children) -> Element:
    """Build an element. Positional children override ``props['children']``."""
    props = dict(props or {})
    if children:
        props['children'] = list(children) if len(children) > 1 else children[0]
    return Element(tag, props)


def raw(content: str) -> Raw:
    """Wrap markup that must bypass escaping. The caller sanitizes it."""
    return Raw(content)


def _style_string(style: Dict[str, Any]) -> str:
    pairs = []
    for key, value in style.items():
        kebab = _CAMEL.sub(lambda m: '-' + m.group(0).lower(), str(key))
        pairs.append(f"{kebab}:{value}")
    return ';'.join(pairs)


def render_attrs(props: Dict[str, Any]) -> str:
    parts = []
    for key, value in props.items():
        if key == 'children' or value is False or value is None:
            continue

        if key == 'behavior' and value == 'boost':
            parts.append(' hx-boost="true"')
            continue

        name = ALIASES.get(key, key)

        if value is True:
            parts.append(f' {name}')
        elif key == 'style' and isinstance(value, dict):
            parts.append(f' style="{escape_html(_style_string(value))}"')
        else:
            parts.append(f' {name}="{escape_html(str(value))}"')
    return ''.join(parts)


def render(node: Any) -> str:
    if node is None or isinstance(node, bool):
        return ''
    if isinstance(node, (str, int, float)):
        return escape_html(str(node))
    if isinstance(node, Raw):
        return node.content
    if isinstance(node, (list, tuple)):
        return ''.join(render(child) for child in node)
    if isinstance(node, Element):
        return _render_element(node)
    return escape_html(str(node))


def _render_element(node: Element) -> str:
    tag = node.tag
    props = node.props or {}
    if not isinstance(props, dict):
        return escape_html(str(node))
    children = props.get('children')

    if tag is Fragment:
        return render(children)

    if callable(tag):
        return render(tag(props))

    if isinstance(tag, str):
        attrs = render_attrs(props)
        if tag in VOID_ELEMENTS:
            return f'<{tag}{attrs}>'
        return f'<{tag}{attrs}>{render(children)}</{tag}>'

    return escape_html(str(tag))


def render_safe(node: Any) -> Tuple[bool, Any]:
    """Render, reporting a failing component as a RenderError instead of raising."""
    try:
        return True, render(node)
    except Exception as e:
        return False, create_error(ErrorKind.RENDER, f"Failed to render node: {e}", e)

"""Tests for the virtual-node renderer."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from folio_pkg.errors import ErrorKind
from folio_pkg.render import Element, Fragment, escape_html, h, raw, render, render_attrs, render_safe


class TestEscaping:
    def test_text_is_escaped(self):
        assert render('<script>') == '&lt;script&gt;'

    def test_raw_is_verbatim(self):
        assert render(raw('<script>')) == '<script>'

    def test_all_special_characters(self):
        assert escape_html('& < > " \'') == '&amp; &lt; &gt; &quot; &#39;'

    def test_numbers_render_as_text(self):
        assert render(42) == '42'
        assert render(1.5) == '1.5'

    def test_empty_nodes(self):
        assert render(None) == ''
        assert render(True) == ''
        assert render(False) == ''

    def test_unknown_object_is_stringified(self):
        class Thing:
            def __str__(self):
                return '<thing>'

        assert render(Thing()) == '&lt;thing&gt;'

    def test_element_with_non_mapping_props_is_stringified(self):
        output = render(Element('div', ['x']))
        assert output.startswith('Element(')
        assert '<div' not in output

    def test_style_keys_are_stringified(self):
        assert render(h('p', {'style': {1: 'red', 'fontSize': '2px'}})) == '<p style="1:red;font-size:2px"></p>'


class TestElements:
    def test_nested_elements(self):
        node = h('ul', {'class_': 'list'}, h('li', None, 'a'), h('li', None, 'b'))
        assert render(node) == '<ul class="list"><li>a</li><li>b</li></ul>'

    def test_void_element_has_no_closing_tag(self):
        assert render(h('img', {'src': '/a.png', 'alt': 'A'})) == '<img src="/a.png" alt="A">'
        assert render(h('br', None, 'ignored')) == '<br>'

    def test_fragment_renders_children_only(self):
        assert render(h(Fragment, None, h('b', None, 'x'), 'y')) == '<b>x</b>y'

    def test_component_receives_props(self):
        def Greeting(props):
            return h('p', None, f"Hello {props['name']}")

        assert render(h(Greeting, {'name': 'Ada'})) == '<p>Hello Ada</p>'

    def test_lists_are_concatenated(self):
        assert render(['a', h('i', None, 'b'), None, 'c']) == 'a<i>b</i>c'

    def test_element_with_children_prop(self):
        assert render(Element('span', {'children': 'x'})) == '<span>x</span>'


class TestAttributes:
    def test_aliases_become_htmx_attributes(self):
        attrs = render_attrs({'get': '/posts/a', 'target': '#content-area', 'swap': 'innerHTML', 'pushUrl': 'true'})
        assert attrs == ' hx-get="/posts/a" hx-target="#content-area" hx-swap="innerHTML" hx-push-url="true"'

    def test_boost_behavior(self):
        assert render_attrs({'behavior': 'boost'}) == ' hx-boost="true"'

    def test_boolean_and_missing_values(self):
        assert render_attrs({'disabled': True, 'hidden': False, 'title': None}) == ' disabled'

    def test_style_dict_is_kebab_cased(self):
        assert render_attrs({'style': {'fontSize': '12px', 'color': 'red'}}) == ' style="font-size:12px;color:red"'

    def test_attribute_values_are_escaped(self):
        assert render_attrs({'title': 'a "quote" & <tag>'}) == ' title="a &quot;quote&quot; &amp; &lt;tag&gt;"'

    def test_children_prop_is_not_an_attribute(self):
        assert render_attrs({'children': 'x', 'id': 'y'}) == ' id="y"'


class TestRenderSafe:
    def test_success(self):
        assert render_safe(h('p', None, 'ok')) == (True, '<p>ok</p>')

    def test_failing_component_is_a_render_error(self):
        def Broken(props):
            raise RuntimeError('boom')

        success, error = render_safe(h(Broken))
        assert not success
        assert error.kind == ErrorKind.RENDER
        assert 'boom' in error.message

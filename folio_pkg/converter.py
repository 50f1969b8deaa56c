"""Markdown to HTML body conversion."""

import mistune

from .errors import ErrorKind, create_error


def create_markdown_parser():
    """Create a Mistune markdown parser with a custom renderer."""
    class CustomRenderer(mistune.HTMLRenderer):
        def __init__(self):
            super().__init__(escape=False)

        def block_code(self, code, info=None):
            escaped_code = mistune.escape(code)
            if info:
                lang = mistune.escape(info.strip().split(None, 1)[0])
                return '<pre><code class="language-{}">{}</code></pre>\n'.format(lang, escaped_code)
            return '<pre style="white-space: pre-wrap;"><code>{}</code></pre>\n'.format(escaped_code)

    return mistune.create_markdown(
        renderer=CustomRenderer(),
        plugins=['table', 'task_lists', 'strikethrough']
    )


class MarkdownConverter:
    """Callable converter: ``converter(text) -> (success, html_or_error)``."""

    def __init__(self):
        self.markdown_parser = create_markdown_parser()

    def __call__(self, text):
        try:
            return True, self.markdown_parser(text)
        except Exception as e:
            return False, create_error(ErrorKind.PARSE, f"Failed to convert markdown: {e}", e)

"""Test configuration and fixtures for Folio tests."""

import os
import sys
import shutil
import tempfile
from datetime import date
from pathlib import Path
from unittest.mock import Mock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from folio_pkg.ports import memory_ports
from folio_pkg.settings import AtProtoConfig, SiteConfig

TODAY = date(2026, 1, 1)

POSTS_DIR = 'content/posts'


def post_text(title, post_date, tags=None, body='Some **body** text.', extra=''):
    lines = ['---', f'title: "{title}"', f'date: {post_date}']
    if tags:
        lines.append('tags:')
        lines.extend(f'  - "{tag}"' for tag in tags)
    if extra:
        lines.append(extra)
    lines.append('---')
    return '\n'.join(lines) + '\n\n' + body


SAMPLE_POSTS = {
    'hello-world.md': post_text('Hello World', '2025-01-15', ['Python', 'Web'], 'Hello from **Folio**.'),
    'second-post.md': post_text('Second Post', '2025-02-01', ['python'], 'More words here.',
                                extra='excerpt: "The second one"'),
    'node-notes.md': post_text('Node Notes', '2024-12-24', ['node.js'], 'Notes on node.'),
}


@pytest.fixture
def today():
    return lambda: TODAY


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def posts_on_disk(temp_dir):
    """A real posts directory holding the sample posts."""
    posts_dir = Path(temp_dir) / 'content' / 'posts'
    posts_dir.mkdir(parents=True)
    for name, text in SAMPLE_POSTS.items():
        (posts_dir / name).write_text(text, encoding='utf-8')
    return str(posts_dir)


@pytest.fixture
def memory_store():
    """In-memory reader and writer preloaded with the sample posts and assets."""
    files = {os.path.join(POSTS_DIR, name): text for name, text in SAMPLE_POSTS.items()}
    files['public/css/style.css'] = 'body {  color : red ; }'
    files['public/js/site.js'] = 'function  hello ( ) { return 1 ; }'
    return memory_ports(files)


@pytest.fixture
def site_config():
    return SiteConfig(
        posts_dir=POSTS_DIR,
        output_dir='_site',
        public_dir='public',
        site_url='https://blog.example.com',
        site_title='Example Blog',
        site_description='Notes and essays',
    )


@pytest.fixture
def atproto_config():
    return AtProtoConfig(did='did:plc:abc123', handle='alice.example.com', app_password='app-pass')


@pytest.fixture
def mock_session():
    """Create a mock requests session."""
    session = Mock()
    session.headers = {}
    return session


def mock_response(status_code=200, payload=None, text=None):
    response = Mock()
    response.status_code = status_code
    if payload is not None:
        response.json.return_value = payload
        response.text = text if text is not None else 'json'
    else:
        response.json.side_effect = ValueError('No JSON')
        response.text = text or ''
    return response

"""Tests for publishing to and pulling from the record store."""

import os
import sys
from unittest.mock import Mock, patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from conftest import POSTS_DIR, post_text
from folio_pkg.errors import ErrorKind, create_error
from folio_pkg.mapping import DOCUMENT_COLLECTION, PUBLICATION_COLLECTION, to_record
from folio_pkg.models import PostMeta
from folio_pkg.ports import memory_ports
from folio_pkg.sync import SyncService

DID = 'did:plc:abc123'


class FakeClient:
    """Keeps records in a dict and serves them back in pages."""

    def __init__(self, records=None):
        self.did = DID
        self.records = dict(records or {})
        self.list_calls = []
        self.put_failures = {}

    def put_record(self, collection, rkey, record):
        if rkey in self.put_failures:
            return False, self.put_failures[rkey]
        self.records[(collection, rkey)] = record
        return True, {'uri': f"at://{DID}/{collection}/{rkey}", 'cid': 'bafy'}

    def list_records(self, collection, limit=100, cursor=None):
        self.list_calls.append(cursor)
        keys = sorted(k for k in self.records if k[0] == collection)
        start = int(cursor or 0)
        chunk = keys[start:start + limit]
        page = {'records': [
            {'uri': f"at://{DID}/{c}/{rkey}", 'cid': 'bafy', 'value': self.records[(c, rkey)]}
            for c, rkey in chunk
        ]}
        if start + limit < len(keys):
            page['cursor'] = str(start + limit)
        return True, page


def remote_document(slug, title=None, body='Remote body'):
    meta = PostMeta(title=title or slug.title(), date='2025-01-15', slug=slug, raw_body=body)
    return to_record(meta, f"at://{DID}/site.standard.publication/self", 'https://blog.example.com')


@pytest.fixture
def service_factory(site_config, today):
    def make(client, files=None):
        file_system, writer = memory_ports(files or {})
        writer.ensure_dir(POSTS_DIR)
        return SyncService(client, file_system, writer, site_config, today=today), file_system
    return make


class TestPublish:
    def test_ensure_publication(self, service_factory):
        client = FakeClient()
        service, _ = service_factory(client)
        success, _ = service.ensure_publication()
        assert success
        assert client.records[(PUBLICATION_COLLECTION, 'self')] == {
            '$type': 'site.standard.publication',
            'url': 'https://blog.example.com',
            'name': 'Example Blog',
            'description': 'Notes and essays',
        }

    def test_publish_all_puts_every_post(self, site_config, memory_store, today):
        file_system, writer = memory_store
        client = FakeClient()
        service = SyncService(client, file_system, writer, site_config, today=today)

        success, report = service.publish_all()

        assert success
        assert report.succeeded == 3
        assert report.errors == []
        record = client.records[(DOCUMENT_COLLECTION, 'hello-world')]
        assert record['site'] == f"at://{DID}/site.standard.publication/self"
        assert record['content']['value'] == 'Hello from **Folio**.'

    def test_publish_is_idempotent(self, site_config, memory_store, today):
        file_system, writer = memory_store
        client = FakeClient()
        service = SyncService(client, file_system, writer, site_config, today=today)

        service.publish_all()
        first = dict(client.records)
        service.publish_all()
        assert client.records == first

    def test_item_failures_are_reported(self, site_config, memory_store, today):
        file_system, writer = memory_store
        writer.write_file(os.path.join(POSTS_DIR, 'broken.md'), 'no front matter')
        client = FakeClient()
        client.put_failures['second-post'] = create_error(ErrorKind.NETWORK, 'HTTP 500')
        service = SyncService(client, file_system, writer, site_config, today=today)

        success, report = service.publish_all()

        assert success
        assert report.succeeded == 2
        assert report.errors == ['broken: Invalid frontmatter format', 'second-post: HTTP 500']

    def test_missing_posts_directory_is_fatal(self, site_config, today):
        file_system, writer = memory_ports()
        service = SyncService(FakeClient(), file_system, writer, site_config, today=today)
        success, error = service.publish_all()
        assert not success
        assert error.kind == ErrorKind.IO

    def test_publish_post(self, site_config, memory_store, today):
        file_system, writer = memory_store
        client = FakeClient()
        service = SyncService(client, file_system, writer, site_config, today=today)
        success, result = service.publish_post('node-notes')
        assert success
        assert result['uri'].endswith('/node-notes')

    def test_publish_all_goes_through_publish_post(self, site_config, memory_store, today):
        file_system, writer = memory_store
        writer.write_file(os.path.join(POSTS_DIR, 'My Draft Notes.md'), post_text('Draft Notes', '2025-03-01'))
        client = FakeClient()
        service = SyncService(client, file_system, writer, site_config, today=today)

        with patch.object(service, 'publish_post', wraps=service.publish_post) as publish_post:
            success, report = service.publish_all()

        assert success
        assert report.errors == []
        assert sorted(c.args[0] for c in publish_post.call_args_list) == \
            ['My Draft Notes', 'hello-world', 'node-notes', 'second-post']
        assert (DOCUMENT_COLLECTION, 'my-draft-notes') in client.records


class TestPull:
    def test_pagination_terminates(self, service_factory):
        records = {(DOCUMENT_COLLECTION, f"post-{i:03d}"): remote_document(f"post-{i:03d}") for i in range(250)}
        client = FakeClient(records)
        service, file_system = service_factory(client)

        success, report = service.pull_all()

        assert success
        assert len(client.list_calls) == 3
        assert report.succeeded == 250
        assert report.skipped == 0
        assert file_system.exists(os.path.join(POSTS_DIR, 'post-249.md'))

    def test_skip_existing_without_force(self, service_factory):
        client = FakeClient({(DOCUMENT_COLLECTION, 'hi'): remote_document('hi')})
        local = os.path.join(POSTS_DIR, 'hi.md')
        service, file_system = service_factory(client, {local: 'local edits'})

        success, report = service.pull_all()
        assert success
        assert (report.succeeded, report.skipped) == (0, 1)
        assert file_system.read_file(local) == (True, 'local edits')

    def test_force_overwrites(self, service_factory):
        client = FakeClient({(DOCUMENT_COLLECTION, 'hi'): remote_document('hi')})
        local = os.path.join(POSTS_DIR, 'hi.md')
        service, file_system = service_factory(client, {local: 'local edits'})

        success, report = service.pull_all(force=True)
        assert success
        assert (report.succeeded, report.skipped) == (1, 0)
        assert file_system.read_file(local)[1].endswith('\n\nRemote body')

    def test_first_page_failure_is_fatal(self, service_factory):
        client = Mock(did=DID)
        client.list_records.return_value = (False, create_error(ErrorKind.NETWORK, 'down', retryable=True))
        service, _ = service_factory(client)

        success, error = service.pull_all()
        assert not success
        assert error.kind == ErrorKind.NETWORK
        assert 'down' in error.message

    def test_later_page_failure_stops_paging(self, service_factory):
        client = Mock(did=DID)
        client.list_records.side_effect = [
            (True, {'records': [{'uri': 'at://x/1', 'value': remote_document('one')}], 'cursor': 'c1'}),
            (False, create_error(ErrorKind.NETWORK, 'HTTP 502')),
        ]
        service, _ = service_factory(client)

        success, report = service.pull_all()
        assert success
        assert report.succeeded == 1
        assert report.errors == ['page 2: HTTP 502']

    def test_repeated_cursor_is_retried_once(self, service_factory):
        client = Mock(did=DID)
        client.list_records.side_effect = [
            (True, {'records': [{'uri': 'at://x/1', 'value': remote_document('one')}], 'cursor': 'c1'}),
            (True, {'records': [{'uri': 'at://x/1', 'value': remote_document('one')}], 'cursor': 'c1'}),
            (True, {'records': [{'uri': 'at://x/2', 'value': remote_document('two')}]}),
        ]
        service, _ = service_factory(client)

        success, report = service.pull_all()
        assert success
        assert report.succeeded == 2
        assert client.list_records.call_count == 3

    def test_stuck_cursor_fails(self, service_factory):
        client = Mock(did=DID)
        client.list_records.return_value = (True, {'records': [], 'cursor': 'stuck'})
        service, _ = service_factory(client)

        success, error = service.pull_all()
        assert not success
        assert error.kind == ErrorKind.NETWORK
        assert client.list_records.call_count == 3

    def test_page_limit(self, site_config, today):
        counter = iter(range(10 ** 6))
        client = Mock(did=DID)
        client.list_records.side_effect = lambda *a, **kw: (True, {'records': [], 'cursor': str(next(counter))})
        file_system, writer = memory_ports()
        service = SyncService(client, file_system, writer, site_config, max_pages=5, today=today)

        success, error = service.pull_all()
        assert not success
        assert client.list_records.call_count == 5

    def test_unsafe_paths_are_reported(self, service_factory):
        bad = remote_document('ok')
        bad['path'] = '/posts/../../etc/passwd'
        empty = remote_document('ok')
        empty['path'] = '/posts/'
        client = Mock(did=DID)
        client.list_records.return_value = (True, {'records': [
            {'uri': 'at://x/bad', 'value': bad},
            {'uri': 'at://x/empty', 'value': empty},
        ]})
        service, _ = service_factory(client)

        success, report = service.pull_all()
        assert success
        assert report.succeeded == 0
        assert len(report.errors) == 2

    def test_timestamps_cannot_inject_front_matter(self, service_factory):
        injected = remote_document('sneaky')
        injected['publishedAt'] = '2025-01-15\ndraft: true'
        undated = remote_document('undated')
        undated['publishedAt'] = 'yesterday'
        client = Mock(did=DID)
        client.list_records.return_value = (True, {'records': [
            {'uri': 'at://x/sneaky', 'value': injected},
            {'uri': 'at://x/undated', 'value': undated},
        ]})
        service, file_system = service_factory(client)

        success, report = service.pull_all()
        assert success
        assert report.succeeded == 1
        assert report.errors[0].startswith('at://x/undated: cannot map record')
        contents = file_system.read_file(os.path.join(POSTS_DIR, 'sneaky.md'))[1]
        assert 'draft' not in contents
        assert '\ndate: 2025-01-15\n' in contents

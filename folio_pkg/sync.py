"""
Synchronization between the posts directory and the remote record store.

Each call is a clean pass with no state carried between runs. Per-item
failures are collected into a :class:`SyncReport`; only failing to list the
local directory (publish) or the first remote page (pull) fails the call.
"""

import os
import logging
from datetime import date
from typing import Callable, Set

from .content import POST_EXTENSION, parse_post_meta, slug_from_filename
from .errors import ErrorKind, create_error
from .mapping import (
    DOCUMENT_COLLECTION,
    PUBLICATION_COLLECTION,
    PUBLICATION_RKEY,
    publication_record,
    publication_uri,
    record_key,
    to_entity,
    to_record,
)
from .models import SyncReport

PAGE_SIZE = 100
MAX_PAGES = 1000


class SyncService:
    def __init__(self, client, file_system, file_writer, config, page_size=PAGE_SIZE,
                 max_pages=MAX_PAGES, today: Callable[[], date] = date.today):
        self.client = client
        self.file_system = file_system
        self.file_writer = file_writer
        self.config = config
        self.posts_dir = config.posts_dir
        self.page_size = page_size
        self.max_pages = max_pages
        self.today = today
        self.publication_ref = publication_uri(client.did)
        self.logger = logging.getLogger('Folio.sync')

    def ensure_publication(self):
        """Upsert the site's publication record under its fixed key."""
        record = publication_record(self.config.site_url, self.config.site_title, self.config.site_description)
        self.logger.info("Ensuring publication record exists")
        return self.client.put_record(PUBLICATION_COLLECTION, PUBLICATION_RKEY, record)

    # Publish

    def _load_meta(self, filename):
        path = os.path.join(self.posts_dir, filename)
        success, text = self.file_system.read_file(path)
        if not success:
            return False, text
        return parse_post_meta(text, slug_from_filename(filename), today=self.today)

    def _put(self, meta):
        rkey = record_key(meta.slug)
        if not rkey:
            return False, create_error(ErrorKind.VALIDATION, f"Slug {meta.slug!r} has no characters usable in a record key")
        record = to_record(meta, self.publication_ref, self.config.site_url)
        self.logger.info(f"Publishing: {meta.slug} -> {rkey}")
        return self.client.put_record(DOCUMENT_COLLECTION, rkey, record)

    def publish_post(self, slug):
        """Publish the post stored as ``<slug>.md`` in the posts directory."""
        success, meta = self._load_meta(f"{slug}{POST_EXTENSION}")
        if not success:
            return False, meta
        return self._put(meta)

    def publish_all(self):
        """Put every local post under the record key derived from its slug."""
        success, names = self.file_system.read_dir(self.posts_dir)
        if not success:
            return False, names

        report = SyncReport()
        for filename in (name for name in names if name.endswith(POST_EXTENSION)):
            identifier = slug_from_filename(filename)
            success, result = self.publish_post(filename[:-len(POST_EXTENSION)])
            if success:
                report.succeeded += 1
            else:
                report.add_error(identifier, result.message)
                self.logger.error(f"Failed to publish {filename}: {result.message}")

        self.logger.info(
            f"Publish complete: {report.succeeded} published, {report.skipped} skipped, "
            f"{len(report.errors)} errors"
        )
        return True, report

    # Pull

    def pull_all(self, force=False):
        """
        Write every remote document into the posts directory.

        Existing files are left alone unless ``force`` is set. Paging follows
        the server's cursor; a cursor that comes back unchanged is retried
        once before the run is abandoned.
        """
        report = SyncReport()
        seen: Set[str] = set()
        cursor = None
        retried = False
        pages = 0

        while True:
            if pages >= self.max_pages:
                return False, create_error(
                    ErrorKind.NETWORK,
                    f"Stopped after {self.max_pages} pages; the server kept returning cursors",
                )

            success, page = self.client.list_records(DOCUMENT_COLLECTION, limit=self.page_size, cursor=cursor)
            pages += 1
            if not success:
                if pages == 1:
                    return False, create_error(
                        ErrorKind.NETWORK,
                        f"Failed to list records from PDS: {page.message}",
                        page,
                        retryable=page.retryable,
                    )
                report.add_error(f"page {pages}", page.message)
                self.logger.error(f"Listing page {pages} failed, stopping: {page.message}")
                break

            for item in page.get('records', []):
                self._pull_record(item, force, report, seen)

            next_cursor = page.get('cursor')
            if not next_cursor:
                break
            if next_cursor == cursor:
                if retried:
                    return False, create_error(
                        ErrorKind.NETWORK,
                        f"Server returned the same cursor {cursor!r} again after a retry",
                    )
                retried = True
                self.logger.warning(f"Cursor did not advance ({cursor!r}), retrying once")
            else:
                retried = False
            cursor = next_cursor

        self.logger.info(
            f"Pull complete: {report.succeeded} pulled, {report.skipped} skipped, "
            f"{len(report.errors)} errors"
        )
        return True, report

    def _pull_record(self, item, force, report, seen):
        uri = item.get('uri') if isinstance(item, dict) else None
        if uri and uri in seen:
            return
        if uri:
            seen.add(uri)

        identifier = uri or '<unknown record>'
        value = item.get('value') if isinstance(item, dict) else None
        if not isinstance(value, dict):
            report.add_error(identifier, "record has no value")
            return

        try:
            filename, contents = to_entity(value)
        except (AttributeError, TypeError, ValueError) as e:
            report.add_error(identifier, f"cannot map record: {e}")
            return

        slug = filename[:-len(POST_EXTENSION)]
        if not slug or '/' in slug or '\\' in slug or slug.startswith('.'):
            report.add_error(identifier, f"unsafe path {value.get('path')!r}")
            return

        path = os.path.join(self.posts_dir, filename)
        if not force and self.file_system.exists(path):
            report.skipped += 1
            self.logger.debug(f"Skipping existing file: {filename}")
            return

        success, error = self.file_writer.write_file(path, contents)
        if success:
            report.succeeded += 1
            self.logger.info(f"Pulled: {filename}")
        else:
            report.add_error(filename, error.message)
            self.logger.error(f"Failed to write {filename}: {error.message}")

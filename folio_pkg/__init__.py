"""
Folio - a personal publishing engine.

Folio keeps a directory of Markdown posts with YAML front matter in sync with
standard.site records on an AT Protocol PDS, and builds a static mirror of
the site in which every page also ships an htmx navigation fragment.
"""

__version__ = "1.0.0"

from .builder import StaticBuilder
from .content import ContentRepository
from .handlers import create_route_handlers
from .render import h, raw, render
from .settings import FolioSettings, SiteConfig
from .sync import SyncService

__all__ = [
    'ContentRepository',
    'FolioSettings',
    'SiteConfig',
    'StaticBuilder',
    'SyncService',
    'create_route_handlers',
    'h',
    'raw',
    'render',
]

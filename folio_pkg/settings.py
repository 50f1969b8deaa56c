#!/usr/bin/env python3
"""
Settings loader for Folio.
Supports configuration from folio.yml, folio.yaml or folio.json files,
environment variables, and command-line arguments.
"""

import os
import json
import yaml
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple


@dataclass(frozen=True)
class AtProtoConfig:
    did: str
    handle: str
    app_password: str
    service: str = 'https://bsky.social'


@dataclass(frozen=True)
class SiteConfig:
    posts_dir: str
    output_dir: str
    public_dir: str
    site_url: str
    site_title: str
    site_description: str
    canonical_tags: Tuple[str, ...] = ()
    minify: bool = False
    enable_validation: bool = True
    atproto: Optional[AtProtoConfig] = None


class FolioSettings:
    """Load and manage Folio configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'posts_dir': 'content/posts',
        'output_dir': '_site',
        'public_dir': 'public',
        'site_url': 'http://localhost:8000',
        'site_title': 'Folio',
        'site_description': 'A minimal blog',
        'canonical_tags': [],
        'minify': False,
        'enable_validation': True,
        'atproto_did': None,
        'atproto_handle': None,
        'atproto_app_password': None,
        'atproto_service': 'https://bsky.social',
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['folio.yml', 'folio.yaml', 'folio.json']

    # Environment variables and the settings they override
    ENV_VARS = {
        'POSTS_DIR': 'posts_dir',
        'PUBLIC_URL': 'site_url',
        'BLOG_TITLE': 'site_title',
        'BLOG_DESCRIPTION': 'site_description',
        'ATPROTO_DID': 'atproto_did',
        'ATPROTO_HANDLE': 'atproto_handle',
        'ATPROTO_APP_PASSWORD': 'atproto_app_password',
        'ATPROTO_SERVICE': 'atproto_service',
    }

    def __init__(self, config_dir: str = None, environ: Dict[str, str] = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
            environ: Environment mapping. Defaults to ``os.environ``.
        """
        self.config_dir = config_dir or os.getcwd()
        self.environ = os.environ if environ is None else environ
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from the configuration file and the environment.

        Returns:
            Dictionary of configuration settings

        Raises:
            ValueError: If the configuration file cannot be parsed
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            if loaded_settings:
                if not isinstance(loaded_settings, dict):
                    raise ValueError(f"Configuration file {config_file} must contain a mapping")
                self.settings.update(loaded_settings)

        for env_name, key in self.ENV_VARS.items():
            value = self.environ.get(env_name)
            if value:
                self.settings[key] = value

        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    return json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")
        except (IOError, OSError) as e:
            raise IOError(f"Error reading configuration file {config_path}: {e}")

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        if file_format not in ('yml', 'yaml', 'json'):
            raise ValueError(f"Unsupported config file format: {file_format}")

        filename = f'folio.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    f.write("# Folio Configuration File\n\n")
                    f.write("# Site information\n")
                    f.write("site_url: https://example.com\n")
                    f.write("site_title: My Blog\n")
                    f.write("site_description: Notes and essays\n\n")
                    f.write("# Paths\n")
                    f.write("posts_dir: content/posts\n")
                    f.write("output_dir: _site\n")
                    f.write("public_dir: public\n\n")
                    f.write("# Preferred display casing for tags\n")
                    f.write("canonical_tags:\n")
                    f.write("  - TypeScript\n")
                    f.write("  - Python\n\n")
                    f.write("# Build settings\n")
                    f.write("minify: false\n")
                    f.write("enable_validation: true\n\n")
                    f.write("# AT Protocol (the app password belongs in ATPROTO_APP_PASSWORD)\n")
                    f.write("atproto_did: did:plc:example\n")
                    f.write("atproto_handle: example.bsky.social\n")
                    f.write("atproto_service: https://bsky.social\n")
                else:
                    sample = {k: v for k, v in self.DEFAULT_SETTINGS.items() if k != 'atproto_app_password'}
                    json.dump(sample, f, indent=2)
        except (IOError, OSError) as e:
            raise IOError(f"Error writing configuration file {config_path}: {e}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = self.settings.copy()

        for key, value in args_dict.items():
            if value is not None and key in self.DEFAULT_SETTINGS:
                if key == 'canonical_tags' and isinstance(value, str):
                    merged[key] = [tag.strip() for tag in value.split(',') if tag.strip()]
                else:
                    merged[key] = value

        self.settings = merged
        return merged.copy()

    def to_config(self) -> SiteConfig:
        """Freeze the current settings into the config passed to every component."""
        s = self.settings
        atproto = None
        if s.get('atproto_did') and s.get('atproto_handle') and s.get('atproto_app_password'):
            atproto = AtProtoConfig(
                did=s['atproto_did'],
                handle=s['atproto_handle'],
                app_password=s['atproto_app_password'],
                service=s.get('atproto_service') or 'https://bsky.social',
            )

        return SiteConfig(
            posts_dir=s['posts_dir'],
            output_dir=s['output_dir'],
            public_dir=s['public_dir'],
            site_url=str(s['site_url']).rstrip('/'),
            site_title=s['site_title'],
            site_description=s['site_description'],
            canonical_tags=tuple(s.get('canonical_tags') or ()),
            minify=_as_bool(s.get('minify')),
            enable_validation=_as_bool(s.get('enable_validation', True)),
            atproto=atproto,
        )


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)

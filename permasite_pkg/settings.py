#!/usr/bin/env python3
"""
Settings loader for the Permasite site builder.
Supports configuration from _config.yml, _config.yaml, or _config.json files
found at the root of the site source.
"""

import os
import copy
import json
import logging
import yaml
from typing import Dict, Any, Optional

from .errors import ConfigError

logger = logging.getLogger('Permasite.settings')


class BuildFlags:
    """
    Build-time overrides applied after the configuration file is loaded.

    Each flag is None unless it was explicitly set, so that an unset flag never
    clobbers the configured value.
    """

    FIELDS = ('destination', 'unpublished', 'drafts', 'future')

    def __init__(self, destination: Optional[str] = None, unpublished: Optional[bool] = None,
                 drafts: Optional[bool] = None, future: Optional[bool] = None):
        self.destination = destination
        self.unpublished = unpublished
        self.drafts = drafts
        self.future = future

    def __repr__(self):
        values = ', '.join(f"{name}={getattr(self, name)!r}" for name in self.FIELDS)
        return f"BuildFlags({values})"


class SiteSettings:
    """Load and manage site configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        # Where things are
        'source': '.',
        'destination': './_site',
        'layouts_dir': '_layouts',
        'collections': {
            'posts': {'output': True},
        },

        # Handling reading
        'include': ['.htaccess'],
        'exclude': ['Gemfile', 'Gemfile.lock', 'node_modules', 'vendor/bundle/',
                    'vendor/cache/', 'vendor/gems/', 'vendor/ruby/'],
        'keep_files': ['.git', '.svn'],
        'encoding': 'utf-8',
        'markdown_ext': 'markdown,mkdown,mkdn,mkd,md',
        'strict_front_matter': False,

        # Filtering content
        'unpublished': False,
        'drafts': False,
        'future': False,

        # Outputting
        'permalink': 'date',
        'paginate_path': '/page:num',
        'timezone': None,
        'url': '',
        'baseurl': '',

        # Front matter defaults and template plugins
        'defaults': [],
        'plugins': [],
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['_config.yml', '_config.yaml', '_config.json']

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings

        Raises:
            ConfigError: if the configuration file exists but cannot be used
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            if loaded_settings:
                # Merge with defaults, giving preference to loaded settings
                self.settings.update(loaded_settings)
            logger.debug(f"Loaded configuration from: {os.path.relpath(config_file)}")

        self.settings['collections'] = normalize_collections(self.settings.get('collections'))
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
                    loaded = yaml.safe_load(f)
                elif file_ext == '.json':
                    loaded = json.load(f)
                else:
                    raise ConfigError(f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file {config_path}", e)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file {config_path}", e)
        except (IOError, OSError) as e:
            raise ConfigError(f"Error reading configuration file {config_path}", e)

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Configuration file {config_path} must contain a mapping, "
                              f"not {type(loaded).__name__}")
        return loaded

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        flags = BuildFlags(**{name: args_dict.get(name) for name in BuildFlags.FIELDS})
        return apply_flags(self.settings, flags)


def normalize_collections(collections) -> Dict[str, Dict[str, Any]]:
    """
    Return the collections setting as a name -> options mapping.

    The configuration may list collection names or map them to options; the
    posts collection is always present.
    """
    if collections is None:
        collections = {}
    elif isinstance(collections, (list, tuple)):
        collections = {name: {} for name in collections}
    elif not isinstance(collections, dict):
        raise ConfigError(f"collections must be a list or a mapping, not {type(collections).__name__}")

    normalized = {}
    for name, options in collections.items():
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise ConfigError(f"Options for collection '{name}' must be a mapping")
        normalized[str(name)] = dict(options)
    normalized.setdefault('posts', {'output': True})
    return normalized


def apply_flags(settings: Dict[str, Any], flags: BuildFlags) -> Dict[str, Any]:
    """Return a copy of settings with every explicitly set flag applied."""
    merged = settings.copy()
    for name in BuildFlags.FIELDS:
        value = getattr(flags, name)
        if value is not None:
            merged[name] = value
    return merged


def markdown_extensions(settings: Dict[str, Any]) -> frozenset:
    """Return the configured markdown extensions as a set of '.ext' strings."""
    raw = settings.get('markdown_ext') or ''
    if isinstance(raw, (list, tuple)):
        names = raw
    else:
        names = str(raw).split(',')
    return frozenset('.' + name.strip().lstrip('.').lower() for name in names if name.strip())


def load_site_settings(source: str, flags: Optional[BuildFlags] = None) -> Dict[str, Any]:
    """
    Load the configuration found in source, apply flags, and resolve directories.

    The returned settings carry absolute 'source' and 'destination' paths and,
    when a file was read, its location under 'config_file'.
    """
    loader = SiteSettings(source)
    settings = loader.load_settings()
    if flags is not None:
        settings = apply_flags(settings, flags)

    settings['source'] = os.path.abspath(os.path.join(source, settings.get('source') or '.'))
    destination = os.path.expanduser(settings.get('destination') or './_site')
    settings['destination'] = os.path.abspath(os.path.join(settings['source'], destination))
    settings['config_file'] = loader.config_file_path
    return settings

"""
Front matter parsing and the defaults cascade.

A document's properties are assembled from, lowest to highest precedence:
site-wide defaults, scoped defaults (longest matching path prefix wins, a typed
scope beats an untyped one of the same length, later declarations break ties),
the owning collection's mapping, and the document's own front matter. Merging
is shallow: nested values are replaced, never combined.
"""

import re
import yaml

from .errors import ConfigError, FrontMatterError

FRONT_MATTER_RE = re.compile(
    r'\A---[ \t]*\r?\n(?P<yaml>.*?)^(?:---|\.\.\.)[ \t]*(?:\r?\n|\Z)',
    re.DOTALL | re.MULTILINE,
)

LOOSE_TYPE = 'pages'


def merge(*maps):
    """Merge mappings left to right; later keys win and nothing is deep-merged."""
    merged = {}
    for mapping in maps:
        if mapping:
            merged.update(mapping)
    return merged


def split_front_matter(text, path):
    """
    Split text into (front matter, body).

    Returns (None, text) when the text carries no front matter block. Raises
    FrontMatterError when the block is not a YAML mapping.
    """
    text = text.lstrip('\ufeff')
    match = FRONT_MATTER_RE.match(text)
    if not match:
        return None, text

    block = match.group("yaml")
    try:
        metadata = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise FrontMatterError(path, str(e).replace('\n', ' '))

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise FrontMatterError(path, f"expected a mapping, found {type(metadata).__name__}")
    return metadata, text[match.end():]


def has_front_matter(text):
    text = text.lstrip('\ufeff')
    return bool(FRONT_MATTER_RE.match(text))


def _normalize_scope_path(path):
    path = str(path or '').replace('\\', '/').strip()
    while path.startswith('./'):
        path = path[2:]
    return path.strip('/')


class DefaultsEntry:
    """One entry of the configuration's defaults list: a scope and its values."""

    def __init__(self, values, path='', type=None, index=0):
        self.values = dict(values or {})
        self.path = _normalize_scope_path(path)
        self.type = type or None
        self.index = index

    @classmethod
    def from_config(cls, entry, index):
        if not isinstance(entry, dict):
            raise ConfigError(f"defaults[{index}] must be a mapping")
        scope = entry.get('scope') or {}
        values = entry.get('values') or {}
        if not isinstance(scope, dict) or not isinstance(values, dict):
            raise ConfigError(f"defaults[{index}] needs mapping 'scope' and 'values' keys")
        return cls(values, path=scope.get('path', ''), type=scope.get('type'), index=index)

    def matches(self, rel_path, doc_type):
        if self.type and self.type != doc_type:
            return False
        if not self.path:
            return True
        rel_path = _normalize_scope_path(rel_path)
        return rel_path == self.path or rel_path.startswith(self.path + '/')

    def precedence(self):
        return (len(self.path), self.type is not None, self.index)

    def __repr__(self):
        return f"DefaultsEntry(path={self.path!r}, type={self.type!r}, values={self.values!r})"


def parse_defaults(config_defaults):
    """Build DefaultsEntry objects from the 'defaults' configuration value."""
    if not config_defaults:
        return []
    if not isinstance(config_defaults, list):
        raise ConfigError("defaults must be a list of {scope, values} mappings")
    return [DefaultsEntry.from_config(entry, index) for index, entry in enumerate(config_defaults)]


def scoped_defaults(entries, rel_path, collection=None):
    """Merge the values of every defaults entry whose scope covers the document."""
    doc_type = collection or LOOSE_TYPE
    matching = [entry for entry in entries if entry.matches(rel_path, doc_type)]
    matching.sort(key=DefaultsEntry.precedence)
    return merge(*(entry.values for entry in matching))


def resolve_front_matter(entries, rel_path, collection=None, collection_data=None, explicit=None):
    """
    Produce the merged property mapping for one document.

    Args:
        entries: parsed DefaultsEntry list from the site configuration
        rel_path: the document's source-relative path
        collection: owning collection name, or None for loose content
        collection_data: the collection's own default mapping
        explicit: the document's front matter

    Returns:
        A new dict; none of the inputs are modified.
    """
    collection_defaults = None
    if collection:
        collection_defaults = merge(collection_data, {'collection': collection})
    return merge(scoped_defaults(entries, rel_path, collection), collection_defaults, explicit)

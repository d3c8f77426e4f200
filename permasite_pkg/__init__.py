"""
Permasite - a static site builder with declarative URLs.

Permasite reads a source tree of documents with optional YAML front matter,
resolves each document's properties through a cascade of configured defaults,
assigns it exactly one output URL from a permalink pattern, and renders the
result with Jinja2 templates and Markdown.
"""

__version__ = "1.0.0"

from .core import Site
from .documents import Document, read_document
from .errors import (ConfigError, FrontMatterError, PathCollisionError, PermalinkError,
                     PermasiteError, PluginError, RenderError)
from .permalinks import compile_permalink
from .plugins import CapabilityRegistry
from .registry import PathRegistry
from .settings import BuildFlags, SiteSettings

__all__ = [
    'Site', 'Document', 'read_document', 'compile_permalink', 'CapabilityRegistry',
    'PathRegistry', 'BuildFlags', 'SiteSettings', 'PermasiteError', 'ConfigError',
    'FrontMatterError', 'PermalinkError', 'PathCollisionError', 'PluginError', 'RenderError',
]

"""
Collections: named groups of documents sourced from a `_name/` directory.
"""

import os
import logging
from abc import ABC, abstractmethod

from .documents import POSTS

logger = logging.getLogger('Permasite.collection')


class Container(ABC):
    """Something that owns documents: the site itself, or one of its collections."""

    @abstractmethod
    def is_output_enabled(self):
        """Whether the container's documents are written and routed."""

    @abstractmethod
    def path_prefix(self):
        """Source-relative directory prefix of the container's documents."""


class Collection(Container):
    def __init__(self, name, data=None):
        self.name = name
        self.data = dict(data or {})
        self.output = bool(self.data.get('output', False))
        self.documents = []

    def is_output_enabled(self):
        return self.output

    def path_prefix(self):
        return '_' + self.name + '/'

    def is_posts(self):
        return self.name == POSTS

    def source_dir(self, site_source):
        return os.path.join(site_source, '_' + self.name)

    def add(self, document):
        self.documents.append(document)

    def template_objects(self):
        return [document.template_object() for document in self.documents]

    def walk(self, site_source):
        """
        List the source-relative paths of the collection's files in walk order.

        A missing directory yields no paths; it is reported unless this is the
        posts collection, which sites commonly leave out.
        """
        root = self.source_dir(site_source)
        if not os.path.isdir(root):
            if not self.is_posts():
                logger.warning(f"Missing directory for collection: {self.path_prefix()}")
            return []

        paths = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith('.'))
            for filename in sorted(filenames):
                if filename.startswith('.'):
                    continue
                paths.append(os.path.relpath(os.path.join(dirpath, filename), site_source))
        return paths

    def __repr__(self):
        return f"Collection({self.name!r}, output={self.output}, documents={len(self.documents)})"

"""
The site path registry: output URL -> document, unique by construction.
"""

import threading

from .errors import PathCollisionError


class PathRegistry:
    """
    Maps each output URL to the one document that produces it.

    Writes take an exclusive lock. Inserting a second document at a URL that is
    already taken raises PathCollisionError naming both source paths.
    """

    def __init__(self):
        self._by_url = {}
        self._by_path = {}
        self._lock = threading.Lock()

    def add(self, document):
        with self._lock:
            self._insert(document, self._by_url, self._by_path)

    def merge(self, documents):
        """
        Insert a batch of documents in (url, path) order, so the reported
        collision is the same whatever order the batch was produced in.
        """
        ordered = sorted(documents, key=lambda d: (d.permalink, d.path))
        with self._lock:
            by_url, by_path = dict(self._by_url), dict(self._by_path)
            for document in ordered:
                self._insert(document, by_url, by_path)
            # nothing is visible until the whole batch is accepted
            self._by_url, self._by_path = by_url, by_path

    def _insert(self, document, by_url, by_path):
        url = document.permalink
        existing = by_url.get(url)
        if existing is not None:
            if existing.path == document.path:
                return
            raise PathCollisionError(url, existing.path, document.path)
        by_url[url] = document
        by_path[document.path] = url

    def lookup(self, rel_path):
        """Return the URL of the published document at rel_path, or None."""
        return self._by_path.get(rel_path)

    def get(self, url):
        return self._by_url.get(url)

    def routes(self):
        """Return a URL -> source path mapping, ordered by URL."""
        return {url: self._by_url[url].path for url in sorted(self._by_url)}

    def documents(self):
        return [self._by_url[url] for url in sorted(self._by_url)]

    def __contains__(self, url):
        return url in self._by_url

    def __len__(self):
        return len(self._by_url)

    def __iter__(self):
        return iter(sorted(self._by_url))

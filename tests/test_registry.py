"""Tests for the output URL registry."""

import pytest

from permasite_pkg.documents import Document
from permasite_pkg.errors import PathCollisionError
from permasite_pkg.registry import PathRegistry


def doc(path, url):
    return Document(path, permalink=url)


class TestPathRegistry:
    """Test cases for PathRegistry."""

    def test_add_and_lookup(self):
        registry = PathRegistry()
        registry.add(doc('about.md', '/about.html'))

        assert '/about.html' in registry
        assert len(registry) == 1
        assert registry.lookup('about.md') == '/about.html'
        assert registry.get('/about.html').path == 'about.md'
        assert registry.lookup('missing.md') is None
        assert registry.get('/missing.html') is None

    def test_collision_names_both_paths(self):
        registry = PathRegistry()
        registry.add(doc('a.md', '/same/'))
        with pytest.raises(PathCollisionError) as exc_info:
            registry.add(doc('b.md', '/same/'))

        error = exc_info.value
        assert error.url == '/same/'
        assert error.paths == ('a.md', 'b.md')
        assert 'a.md' in str(error) and 'b.md' in str(error)
        assert registry.get('/same/').path == 'a.md'

    def test_same_document_twice_is_ignored(self):
        registry = PathRegistry()
        registry.add(doc('a.md', '/a.html'))
        registry.add(doc('a.md', '/a.html'))
        assert len(registry) == 1

    def test_merge_reports_collision_in_path_order(self):
        documents = [doc('z.md', '/x/'), doc('m.md', '/x/'), doc('a.md', '/a/')]
        for batch in (documents, list(reversed(documents))):
            registry = PathRegistry()
            with pytest.raises(PathCollisionError) as exc_info:
                registry.merge(batch)
            assert exc_info.value.paths == ('m.md', 'z.md')

    def test_merge_is_all_or_nothing(self):
        registry = PathRegistry()
        registry.add(doc('keep.md', '/keep/'))
        with pytest.raises(PathCollisionError):
            registry.merge([doc('new.md', '/new/'), doc('other.md', '/keep/')])

        assert len(registry) == 1
        assert '/new/' not in registry
        assert registry.lookup('new.md') is None

    def test_routes_are_ordered_by_url(self):
        registry = PathRegistry()
        registry.merge([doc('c.md', '/c/'), doc('index.md', '/'), doc('b.md', '/b.html')])

        assert list(registry.routes().items()) == [
            ('/', 'index.md'),
            ('/b.html', 'b.md'),
            ('/c/', 'c.md'),
        ]
        assert list(registry) == ['/', '/b.html', '/c/']
        assert [d.path for d in registry.documents()] == ['index.md', 'b.md', 'c.md']

    def test_same_batch_gives_same_routes(self):
        batch = [doc(f'p{i}.md', f'/p{i}/') for i in range(10)]
        first, second = PathRegistry(), PathRegistry()
        first.merge(batch)
        second.merge(reversed(batch))
        assert first.routes() == second.routes()

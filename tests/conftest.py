"""Test configuration and fixtures for Permasite tests."""

import pytest
import tempfile
import shutil
import logging
import os
from datetime import datetime
from pathlib import Path

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from permasite_pkg.documents import ReadContext
from permasite_pkg.settings import SiteSettings, markdown_extensions

# Fixed "now" so that future-dated checks do not depend on the clock
NOW = datetime(2024, 1, 1, 12, 0, 0)

# Modification time given to fixture files; undated documents fall back to it
FILE_TIME = datetime(2023, 6, 1, 9, 0, 0).timestamp()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop handlers the site attached so each test gets fresh output streams."""
    yield
    logger = logging.getLogger('Permasite')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def write_files(temp_dir):
    """Return a helper that writes {relative path: text} into the temp directory."""
    def write(files, root=None):
        root = Path(root or temp_dir)
        for rel_path, text in files.items():
            path = root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding='utf-8')
            os.utime(path, (FILE_TIME, FILE_TIME))
        return str(root)
    return write


@pytest.fixture
def default_settings():
    settings = SiteSettings('/nonexistent').settings
    return settings


@pytest.fixture
def make_context(temp_dir, default_settings):
    """Build a ReadContext over the temp directory with optional setting overrides."""
    def make(defaults=None, collections=None, now=NOW, **overrides):
        settings = dict(default_settings, **overrides)
        return ReadContext(
            temp_dir,
            settings,
            defaults or [],
            markdown_extensions(settings),
            collections=collections or {'posts': {'output': True}},
            now=now,
        )
    return make


@pytest.fixture
def sample_site(write_files):
    """Create a small site with pages, posts, a custom collection and a layout."""
    return write_files({
        '_config.yml': """
title: Sample Site
url: https://example.com
baseurl: /blog
collections:
  recipes:
    output: true
    permalink: /recipes/:name/
defaults:
  - scope: {path: ""}
    values: {layout: default}
  - scope: {path: "docs"}
    values: {section: docs}
""",
        '_layouts/default.html': "<html><title>{{ page.title }}</title><body>{{ content }}</body></html>",
        'index.md': "---\ntitle: Home\npermalink: /\n---\n# Welcome\n",
        'about.md': "---\ntitle: About\n---\nAbout {{ site.title }}\n",
        'docs/guide.md': "---\ntitle: Guide\n---\nRead the guide.\n",
        'style.css': "body { color: black; }\n",
        '_posts/news/hello.md': "---\ntitle: Hello\ndate: 2023-05-06\n---\nFirst post.\n",
        '_posts/draft.md': "---\ntitle: Draft\ndate: 2023-05-07\ndraft: true\n---\nNot yet.\n",
        '_posts/later.md': "---\ntitle: Later\ndate: 2030-01-01\n---\nSoon.\n",
        '_recipes/soup.md': "---\ntitle: Soup\n---\nBoil water.\n",
        '.hidden.md': "---\ntitle: Hidden\n---\n",
        'node_modules/pkg/readme.md': "---\ntitle: Vendor\n---\n",
    })

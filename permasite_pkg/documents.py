"""
Documents: one per source file, with merged front matter, a permalink and
publishing flags computed once when the document is read.
"""

import os
import logging
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import FrontMatterError
from .frontmatter import resolve_front_matter, split_front_matter
from .permalinks import (DEFAULT_PATTERN, compile_permalink, output_ext, parse_date,
                         permalink_variables)

logger = logging.getLogger('Permasite.documents')

# Collection whose documents are dated and categorized by directory
POSTS = 'posts'


class ReadContext:
    """
    The inputs every document read needs, bundled so they can be shipped to a
    worker process.
    """

    def __init__(self, source, settings, defaults, markdown_exts, collections=None, now=None):
        self.source = source
        self.defaults = defaults
        self.markdown_exts = markdown_exts
        self.collections = collections or {}
        self.permalink = settings.get('permalink') or 'date'
        self.encoding = settings.get('encoding') or 'utf-8'
        self.timezone = settings.get('timezone')
        self.unpublished = bool(settings.get('unpublished'))
        self.drafts = bool(settings.get('drafts'))
        self.future = bool(settings.get('future'))
        self.now = now or datetime.now()


class Document:
    """A source file and everything computed from it."""

    def __init__(self, path, collection=None, front_matter=None, content=None, permalink=None,
                 modified=None, doc_date=None, static=False, published=True, draft=False,
                 future=False, categories=None):
        self.path = path
        self.collection = collection
        self.front_matter = front_matter or {}
        self.content = content
        self.permalink = permalink
        self.modified = modified
        self.date = doc_date or modified
        self.static = static
        self.published = published
        self.draft = draft
        self.future = future
        self.categories = categories or []

    @property
    def url(self):
        return self.permalink

    @property
    def output_ext(self):
        return os.path.splitext(self.permalink)[1] if self.permalink else ''

    def is_markdown(self, markdown_exts):
        return os.path.splitext(self.path)[1].lower() in markdown_exts

    def template_object(self):
        """The mapping templates see as 'page' or as a collection member."""
        if self.static:
            return {'path': self.path, 'url': self.permalink, 'modified_time': self.modified}
        obj = dict(self.front_matter)
        obj.update({
            'url': self.permalink,
            'path': self.path,
            'date': self.date,
            'collection': self.collection,
            'categories': list(self.categories),
            'content': self.content,
        })
        return obj

    def __repr__(self):
        return f"Document({self.path!r}, permalink={self.permalink!r})"


def _localize(value, timezone):
    if timezone and value.tzinfo is not None:
        try:
            return value.astimezone(ZoneInfo(timezone))
        except ZoneInfoNotFoundError:
            logger.warning(f"Unknown timezone '{timezone}', dates are left unconverted")
    return value


def _is_future(doc_date, now):
    # a naive value is local time
    if doc_date.tzinfo is None and now.tzinfo is not None:
        doc_date = doc_date.astimezone()
    elif doc_date.tzinfo is not None and now.tzinfo is None:
        now = now.astimezone()
    return doc_date > now


def publish_flags(front_matter, doc_date, context):
    """Return (published, draft, future) for a document's merged front matter."""
    published = front_matter.get('published', True) is not False
    draft = bool(front_matter.get('draft', False))
    future = _is_future(doc_date, context.now)
    return published, draft, future


def is_eligible(document, context):
    """Whether the document is published under the build's policy overrides."""
    if not document.published and not context.unpublished:
        return False
    if document.draft and not context.drafts:
        return False
    if document.future and not context.future:
        return False
    return True


def static_url(rel_path, markdown_exts):
    root, _ = os.path.splitext(rel_path.replace(os.sep, '/'))
    return '/' + root.lstrip('/') + output_ext(rel_path, markdown_exts)


def read_document(context, rel_path, collection=None):
    """
    Read one source file into a Document.

    Files without front matter become static documents whose URL is their
    source path. Everything else runs through the defaults cascade and the
    permalink compiler.

    Raises:
        FrontMatterError: unreadable file or unparsable front matter
        PermalinkError: permalink pattern names an unknown variable
    """
    abs_path = os.path.join(context.source, rel_path)
    try:
        modified = datetime.fromtimestamp(os.path.getmtime(abs_path))
        with open(abs_path, 'r', encoding=context.encoding) as f:
            text = f.read()
    except UnicodeDecodeError:
        text = None
    except (IOError, OSError) as e:
        raise FrontMatterError(rel_path, f"cannot read file: {e}")

    explicit, body = split_front_matter(text, rel_path) if text is not None else (None, None)
    if explicit is None:
        return Document(rel_path, collection=collection, modified=modified, static=True,
                        permalink=static_url(rel_path, context.markdown_exts))

    collection_data = context.collections.get(collection) if collection else None
    front_matter = resolve_front_matter(context.defaults, rel_path, collection,
                                        collection_data, explicit)

    doc_date = modified
    if front_matter.get('date') is not None:
        doc_date = _localize(parse_date(front_matter['date'], rel_path), context.timezone)

    pattern = front_matter.get('permalink')
    if not pattern:
        pattern = context.permalink if collection == POSTS else DEFAULT_PATTERN
    collection_root = '_' + POSTS if collection == POSTS else None
    variables = permalink_variables(rel_path, front_matter, doc_date,
                                    output_ext(rel_path, context.markdown_exts), collection_root)
    permalink = compile_permalink(str(pattern), variables, rel_path)

    categories = [c for c in variables['categories'].split('/') if c]
    published, draft, future = publish_flags(front_matter, doc_date, context)
    return Document(rel_path, collection=collection, front_matter=front_matter, content=body,
                    permalink=permalink, modified=modified, doc_date=doc_date,
                    published=published, draft=draft, future=future,
                    categories=categories)

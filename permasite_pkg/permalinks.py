"""
Permalink patterns: variable derivation and pattern compilation.

A pattern mixes literal text with ``:name`` tokens. The four style names
(date, pretty, ordinal, none) stand for the canonical patterns below.
"""

import os
import re
from datetime import datetime, date

from .errors import FrontMatterError, PermalinkError

PERMALINK_STYLES = {
    'date': '/:categories/:year/:month/:day/:name.html',
    'pretty': '/:categories/:year/:month/:day/:name/',
    'ordinal': '/:categories/:year/:y_day/:name.html',
    'none': '/:categories/:name.html',
}

DEFAULT_PATTERN = '/:path:output_ext'

# strftime formats for the date-derived variables
DATE_VARIABLES = {
    'year': '%Y',
    'short_year': '%y',
    'month': '%m',
    'day': '%d',
    'hour': '%H',
    'minute': '%M',
    'second': '%S',
}

DATE_FORMATS = ['%Y-%m-%d %H:%M:%S %z', '%Y-%m-%d %H:%M:%S', '%Y-%m-%dT%H:%M:%S%z',
                '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M', '%Y-%m-%d']

TOKEN_RE = re.compile(r':([A-Za-z_][A-Za-z0-9_]*)')
SEPARATOR_RUN_RE = re.compile(r'/{2,}')


def slugify(text):
    """Lower-case text and collapse every run of non-alphanumerics to a hyphen."""
    text = str(text).lower()
    text = re.sub(r'[^\w]+', '-', text, flags=re.UNICODE)
    return text.replace('_', '-').strip('-')


def output_ext(rel_path, markdown_exts):
    """Return '.html' for markdown sources, otherwise the source extension unchanged."""
    ext = os.path.splitext(rel_path)[1]
    if ext.lower() in markdown_exts:
        return '.html'
    return ext


def parse_date(value, path=None):
    """Parse a front matter date value into a datetime."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
    raise FrontMatterError(path or '<unknown>', f"unrecognized date {value!r}")


def categories_value(front_matter, rel_path=None, collection_root=None):
    """
    Return the categories path segment for a document.

    Explicit categories (a whitespace-separated string or a list) are sorted and
    joined with '/'. Otherwise, when collection_root is given, the directories
    between that root and the file are used.
    """
    explicit = front_matter.get('categories')
    if explicit is None:
        explicit = front_matter.get('category')
    if explicit:
        if isinstance(explicit, str):
            names = explicit.split()
        elif isinstance(explicit, (list, tuple)):
            names = [str(name) for name in explicit]
        else:
            names = [str(explicit)]
        return '/'.join(sorted(names))

    if collection_root and rel_path:
        rel_dir = os.path.dirname(rel_path).replace(os.sep, '/')
        root = collection_root.replace(os.sep, '/').strip('/')
        if rel_dir == root:
            return ''
        if rel_dir.startswith(root + '/'):
            return rel_dir[len(root) + 1:]
    return ''


def permalink_variables(rel_path, front_matter, doc_date, ext, collection_root=None):
    """
    Compute the variable set a permalink pattern is expanded against.

    Args:
        rel_path: source-relative path of the document
        front_matter: merged front matter
        doc_date: the document's effective date
        ext: the document's output extension
        collection_root: directory whose subdirectories name the categories,
            for time-series collections
    """
    rel_path = rel_path.replace(os.sep, '/')
    root = os.path.splitext(rel_path)[0]
    name = os.path.basename(root)

    slug = front_matter.get('slug')
    title = front_matter.get('title')
    variables = {
        'path': '/' + root.lstrip('/'),
        'name': name,
        'slug': slugify(slug) if slug else slugify(name),
        'title': slugify(title) if isinstance(title, str) and title.strip() else slugify(name),
        'output_ext': ext,
        'collection': str(front_matter.get('collection') or ''),
        'categories': categories_value(front_matter, rel_path, collection_root),
    }
    for key, fmt in DATE_VARIABLES.items():
        variables[key] = doc_date.strftime(fmt)
    variables['i_month'] = str(doc_date.month)
    variables['i_day'] = str(doc_date.day)
    variables['y_day'] = str(doc_date.timetuple().tm_yday)
    return variables


def expand_style(pattern):
    return PERMALINK_STYLES.get(pattern, pattern)


def compile_permalink(pattern, variables, path=None):
    """
    Expand pattern against variables and return a normalized absolute URL.

    Raises:
        PermalinkError: if the pattern names a variable that is not defined
    """
    template = expand_style(pattern)

    def substitute(match):
        token = match.group(1)
        if token not in variables:
            raise PermalinkError(pattern, token, path)
        return str(variables[token])

    url = TOKEN_RE.sub(substitute, template)
    url = SEPARATOR_RUN_RE.sub('/', url)
    return '/' + url.lstrip('/')

"""
Value-transform filters available to every template.
"""

import json
import re
from datetime import date, datetime, timezone
from xml.sax.saxutils import escape

from .errors import FrontMatterError
from .permalinks import parse_date

WORD_RE = re.compile(r'\w+')


def _as_datetime(value):
    if isinstance(value, (datetime, date, str)):
        try:
            return parse_date(value)
        except FrontMatterError:
            raise ValueError(f"unrecognized date {value!r}")
    raise TypeError(f"expected a date, got {type(value).__name__}")


def date_to_rfc822(value):
    value = _as_datetime(value)
    zone = value.tzname() or 'UTC'
    return value.strftime('%d %b %y %H:%M ') + zone


def date_to_string(value):
    return _as_datetime(value).strftime('%d %b %Y')


def date_to_long_string(value):
    return _as_datetime(value).strftime('%d %B %Y')


def date_to_xmlschema(value):
    value = _as_datetime(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(timespec='seconds')


def array_to_sentence_string(values, conjunction='and'):
    values = [str(value) for value in values or []]
    if not values:
        return ''
    if len(values) == 1:
        return values[0]
    if len(values) == 2:
        return f"{values[0]} {conjunction} {values[1]}"
    return ', '.join(values[:-1]) + f", {conjunction} {values[-1]}"


def _property(item, key):
    for part in str(key).split('.'):
        if isinstance(item, dict):
            item = item.get(part)
        else:
            item = getattr(item, part, None)
        if item is None:
            return None
    return item


def sort_filter(values, key=None, nils_first=True, reverse=False, case_sensitive=True,
                attribute=None):
    """
    Sort values, or mappings by a property, putting missing properties first or last.

    Also takes the keyword arguments of Jinja2's own sort filter, which this
    one replaces; attribute is another name for key.
    """
    values = list(values or [])
    key = key if key is not None else attribute

    def sort_key(value):
        if not case_sensitive and isinstance(value, str):
            return value.lower()
        return value

    if key is None:
        return sorted(values, key=sort_key, reverse=reverse)
    present = [item for item in values if _property(item, key) is not None]
    missing = [item for item in values if _property(item, key) is None]
    present.sort(key=lambda item: sort_key(_property(item, key)), reverse=reverse)
    return missing + present if nils_first else present + missing


def where_filter(values, key, value=None):
    out = []
    for item in values or []:
        if not isinstance(item, dict) or key not in item:
            continue
        if value is None or str(item[key]) == str(value):
            out.append(item)
    return out


def filter_filter(values, key):
    return [item for item in values or [] if isinstance(item, dict) and key in item]


def push(values, item):
    return list(values or []) + [item]


def unshift(values, item):
    return [item] + list(values or [])


def jsonify(value):
    return json.dumps(value, separators=(',', ':'), default=str)


def to_integer(value):
    return int(value)


def number_of_words(text):
    return len(WORD_RE.findall(str(text or '')))


def xml_escape(text):
    return escape(str(text))


def register_default_filters(registry, settings, markdown_parser):
    """Register the standard filters, binding the URL filters to the site settings."""
    site_url = (settings.get('url') or '').rstrip('/')
    base_url = (settings.get('baseurl') or '').rstrip('/')

    def relative_url(path):
        return base_url + str(path)

    def absolute_url(path):
        return site_url + base_url + str(path)

    def markdownify(text):
        return markdown_parser(str(text or '')).strip()

    for name, fn in [
        ('array_to_sentence_string', array_to_sentence_string),
        ('filter', filter_filter),
        ('sort', sort_filter),
        ('where', where_filter),
        ('push', push),
        ('unshift', unshift),
        ('date_to_rfc822', date_to_rfc822),
        ('date_to_string', date_to_string),
        ('date_to_long_string', date_to_long_string),
        ('date_to_xmlschema', date_to_xmlschema),
        ('absolute_url', absolute_url),
        ('relative_url', relative_url),
        ('jsonify', jsonify),
        ('markdownify', markdownify),
        ('to_integer', to_integer),
        ('number_of_words', number_of_words),
        ('xml_escape', xml_escape),
    ]:
        registry.register_filter(name, fn)

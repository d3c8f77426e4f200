"""Tests for the standard template filters."""

import pytest
from datetime import date, datetime, timezone

from jinja2 import Environment

from permasite_pkg.core import create_markdown_parser
from permasite_pkg.filters import (array_to_sentence_string, date_to_long_string, date_to_rfc822,
                                   date_to_string, date_to_xmlschema, filter_filter, jsonify,
                                   number_of_words, push, register_default_filters, sort_filter,
                                   to_integer, unshift, where_filter, xml_escape)
from permasite_pkg.plugins import CapabilityRegistry


@pytest.fixture
def env():
    """A Jinja2 environment with the default filters for a site under /blog."""
    registry = CapabilityRegistry()
    settings = {'url': 'https://example.com/', 'baseurl': '/blog/'}
    register_default_filters(registry, settings, create_markdown_parser())
    environment = Environment()
    registry.configure_environment(environment)
    return environment


def render(env, source, **context):
    return env.from_string(source).render(**context)


class TestDateFilters:
    """Test cases for the date formatting filters."""

    def test_date_to_string(self):
        assert date_to_string(datetime(2008, 11, 7, 13, 7, 54)) == '07 Nov 2008'
        assert date_to_string(date(2008, 11, 7)) == '07 Nov 2008'
        assert date_to_string('2008-11-07') == '07 Nov 2008'

    def test_date_to_long_string(self):
        assert date_to_long_string(datetime(2008, 11, 7)) == '07 November 2008'

    def test_date_to_rfc822(self):
        value = datetime(2008, 11, 7, 13, 7, 54, tzinfo=timezone.utc)
        assert date_to_rfc822(value) == '07 Nov 08 13:07 UTC'
        assert date_to_rfc822(datetime(2008, 11, 7, 13, 7, 54)) == '07 Nov 08 13:07 UTC'

    def test_date_to_xmlschema(self):
        assert date_to_xmlschema(datetime(2008, 11, 7, 13, 7, 54)) == '2008-11-07T13:07:54+00:00'

    def test_bad_dates(self):
        with pytest.raises(ValueError):
            date_to_string('not a date')
        with pytest.raises(TypeError):
            date_to_string(42)


class TestArrayFilters:
    """Test cases for the list filters."""

    def test_array_to_sentence_string(self):
        assert array_to_sentence_string([]) == ''
        assert array_to_sentence_string(['first']) == 'first'
        assert array_to_sentence_string(['first', 'second']) == 'first and second'
        assert array_to_sentence_string(['first', 'second', 'third']) == 'first, second, and third'
        assert array_to_sentence_string(['a', 'b'], 'or') == 'a or b'

    def test_sort(self):
        values = ['zebra', 'octopus', 'giraffe', 'Sally Snake']
        assert ', '.join(sort_filter(values)) == 'Sally Snake, giraffe, octopus, zebra'

    def test_sort_by_property(self):
        items = [{'n': 2}, {'n': 1}, {}, {'n': 3}]
        assert sort_filter(items, 'n') == [{}, {'n': 1}, {'n': 2}, {'n': 3}]
        assert sort_filter(items, 'n', nils_first=False) == [{'n': 1}, {'n': 2}, {'n': 3}, {}]

    def test_sort_takes_jinja_keywords(self):
        assert sort_filter([3, 1, 2], reverse=True) == [3, 2, 1]
        assert sort_filter([{'x': 2}, {'x': 1}], attribute='x') == [{'x': 1}, {'x': 2}]
        assert sort_filter(['b', 'A', 'c'], case_sensitive=False) == ['A', 'b', 'c']
        assert sort_filter([{'a': {'b': 2}}, {'a': {'b': 1}}], 'a.b') == \
            [{'a': {'b': 1}}, {'a': {'b': 2}}]

    def test_where_and_filter(self):
        items = [{'k': 1, 'name': 'a'}, {'k': '1', 'name': 'b'}, {'k': 2, 'name': 'c'}, {'name': 'd'}]
        assert [i['name'] for i in where_filter(items, 'k', 1)] == ['a', 'b']
        assert [i['name'] for i in where_filter(items, 'k')] == ['a', 'b', 'c']
        assert [i['name'] for i in filter_filter(items, 'k')] == ['a', 'b', 'c']

    def test_push_and_unshift_leave_input_alone(self):
        values = [1, 2]
        assert push(values, 3) == [1, 2, 3]
        assert unshift(values, 0) == [0, 1, 2]
        assert values == [1, 2]


class TestValueFilters:
    """Test cases for the scalar filters."""

    def test_jsonify(self):
        assert jsonify({'a': [1, 2, 3, 4]}) == '{"a":[1,2,3,4]}'
        assert jsonify(date(2020, 1, 2)) == '"2020-01-02"'

    def test_to_integer(self):
        assert to_integer('42') == 42
        assert to_integer(3.9) == 3

    def test_number_of_words(self):
        assert number_of_words('Hello world, one two') == 4
        assert number_of_words(None) == 0

    def test_xml_escape(self):
        assert xml_escape('1 < 2 & 3') == '1 &lt; 2 &amp; 3'


class TestRegisteredFilters:
    """Test cases for the filters as installed into templates."""

    def test_url_filters(self, env):
        assert render(env, "{{ '/about.html' | relative_url }}") == '/blog/about.html'
        assert render(env, "{{ '/about.html' | absolute_url }}") == 'https://example.com/blog/about.html'

    def test_markdownify(self, env):
        assert render(env, "{{ '*hi*' | markdownify }}") == '<p><em>hi</em></p>'

    def test_sentence_and_sort_in_template(self, env):
        assert render(env, "{{ ['a', 'b', 'c'] | array_to_sentence_string }}") == 'a, b, and c'
        assert render(env, "{{ items | sort('n') | map(attribute='n') | join(',') }}",
                      items=[{'n': 2}, {'n': 1}]) == '1,2'

    def test_builtin_sort_arguments_in_template(self, env):
        assert render(env, "{{ [3, 1, 2] | sort(reverse=true) | join(',') }}") == '3,2,1'
        assert render(env, "{{ items | sort(attribute='n') | map(attribute='n') | join(',') }}",
                      items=[{'n': 2}, {'n': 1}]) == '1,2'

    def test_date_filter_in_template(self, env):
        assert render(env, "{{ d | date_to_string }}", d=datetime(2020, 3, 4)) == '04 Mar 2020'

    def test_every_default_filter_is_installed(self, env):
        for name in ['array_to_sentence_string', 'filter', 'sort', 'where', 'push', 'unshift',
                     'date_to_rfc822', 'date_to_string', 'date_to_long_string',
                     'date_to_xmlschema', 'absolute_url', 'relative_url', 'jsonify',
                     'markdownify', 'to_integer', 'number_of_words', 'xml_escape']:
            assert name in env.filters

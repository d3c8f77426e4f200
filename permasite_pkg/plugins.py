"""
Template extension capabilities.

Filters (value transforms) and tags (block-like constructs) are registered by
name into a CapabilityRegistry before the first render, then installed into the
Jinja2 environment. The built-in plugin adapters are only registered when the
site configuration asks for them through `plugins:`.
"""

import logging
from typing import Callable, Dict, Iterable, Optional

from jinja2 import nodes
from jinja2.ext import Extension
from markupsafe import Markup, escape

from .errors import PluginError

logger = logging.getLogger('Permasite.plugins')

FILTER = 'filter'
TAG = 'tag'


def make_tag(name: str, render: Callable[..., str]) -> type:
    """
    Build a Jinja2 extension for the tag `{% name arg ... key=value %}`.

    Arguments are Jinja2 expressions; render receives their values and returns
    the markup the tag produces.
    """

    class TagExtension(Extension):
        tags = {name}

        def parse(self, parser):
            lineno = next(parser.stream).lineno
            args, kwargs = [], []
            while parser.stream.current.type != 'block_end':
                if parser.stream.current.type == 'name' and parser.stream.look().type == 'assign':
                    key = next(parser.stream).value
                    next(parser.stream)
                    kwargs.append(nodes.Keyword(key, parser.parse_expression(), lineno=lineno))
                else:
                    args.append(parser.parse_expression())
                parser.stream.skip_if('comma')
            call = self.call_method('_render_tag', args, kwargs, lineno=lineno)
            return nodes.Output([call], lineno=lineno)

        def _render_tag(self, *args, **kwargs):
            return Markup(render(*args, **kwargs))

    TagExtension.__name__ = TagExtension.__qualname__ = f"{name.title().replace('_', '')}Tag"
    # Jinja2 keys installed extensions by identifier
    TagExtension.identifier = f"{__name__}.tag.{name}"
    return TagExtension


class CapabilityRegistry:
    """Name -> implementation table for template filters and tags."""

    def __init__(self):
        self._entries: Dict[str, tuple] = {}
        self._frozen = False

    def register(self, name: str, impl, kind: str = FILTER) -> None:
        if kind not in (FILTER, TAG):
            raise PluginError(f"Unknown capability kind '{kind}' for '{name}'")
        if self._frozen:
            raise PluginError(f"Cannot register '{name}': template capabilities are already installed")
        if name in self._entries:
            raise PluginError(f"Template {self._entries[name][0]} '{name}' is already registered")
        self._entries[name] = (kind, impl)
        logger.debug(f"Registered template {kind}: {name}")

    def register_filter(self, name: str, fn: Callable) -> None:
        self.register(name, fn, FILTER)

    def register_tag(self, name: str, impl) -> None:
        """Register a tag from a render function or a ready-made Extension class."""
        if not (isinstance(impl, type) and issubclass(impl, Extension)):
            impl = make_tag(name, impl)
        self.register(name, impl, TAG)

    def lookup(self, name: str):
        try:
            return self._entries[name][1]
        except KeyError:
            raise PluginError(f"No template filter or tag named '{name}'")

    def filters(self) -> Dict[str, Callable]:
        return {name: impl for name, (kind, impl) in self._entries.items() if kind == FILTER}

    def tags(self) -> Dict[str, type]:
        return {name: impl for name, (kind, impl) in self._entries.items() if kind == TAG}

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def configure_environment(self, env) -> None:
        """Install every capability into a Jinja2 environment; no registrations after this."""
        env.filters.update(self.filters())
        for extension in self.tags().values():
            env.add_extension(extension)
        self.freeze()

    def __contains__(self, name):
        return name in self._entries

    def __len__(self):
        return len(self._entries)


# Built-in plugin adapters

AVATAR_URL = 'https://avatars3.githubusercontent.com/{user}?v=3&s={size}'


def avatar_tag(*args, user=None, size=40):
    user = user or (args[0] if args else None)
    if not user:
        raise PluginError("avatar tag: missing user")
    size = int(size)
    src = AVATAR_URL.format(user=user, size=size)
    srcset = ', '.join(f"{AVATAR_URL.format(user=user, size=size * scale)} {scale}x"
                       for scale in (1, 2, 3, 4))
    return (f'<img class="avatar avatar-small" src="{escape(src)}" alt="{escape(user)}" '
            f'srcset="{escape(srcset)}" width="{size}" height="{size}" />')


def gist_tag(*args):
    if not args:
        raise PluginError("gist tag: missing argument")
    url = f"https://gist.github.com/{args[0]}.js"
    if len(args) >= 2:
        url += f"?file={args[1]}"
    return f'<script src="{escape(url)}"> </script>'


def _install_avatar(registry, settings):
    registry.register_tag('avatar', avatar_tag)


def _install_gist(registry, settings):
    registry.register_tag('gist', gist_tag)


PLUGINS = {
    'jekyll-avatar': _install_avatar,
    'jekyll-gist': _install_gist,
}


def install_plugins(names: Iterable[str], registry: CapabilityRegistry,
                    settings: Optional[dict] = None) -> None:
    """Register the capabilities of each named plugin."""
    for name in names or []:
        installer = PLUGINS.get(name)
        if installer is None:
            raise PluginError(f"Unknown plugin: {name}", f"available: {', '.join(sorted(PLUGINS))}")
        installer(registry, settings or {})
        logger.debug(f"Installed plugin: {name}")

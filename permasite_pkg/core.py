import os
import shutil
import logging
import time
from datetime import datetime
from concurrent.futures import ProcessPoolExecutor

import mistune
from jinja2 import Environment, FileSystemLoader, TemplateError

from .collection import Collection, Container
from .documents import ReadContext, is_eligible, read_document
from .errors import ConfigError, FrontMatterError, RenderError
from .filters import register_default_filters
from .frontmatter import parse_defaults, split_front_matter
from .plugins import CapabilityRegistry, install_plugins
from .registry import PathRegistry
from .settings import load_site_settings, markdown_extensions, normalize_collections

# Below this many source files, reading in worker processes costs more than it saves
PARALLEL_THRESHOLD = 64


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages (and every warning) to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Site build completed in",
            "Total documents written:",
            "Total static files copied:",
            "Total routes:",
            "Reading documents",
            "Writing site to",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


def create_markdown_parser():
    """Create a Mistune markdown parser."""
    return mistune.create_markdown(
        renderer=mistune.HTMLRenderer(escape=False),
        plugins=['table', 'task_lists', 'strikethrough']
    )


class Site(Container):
    """
    A site: its settings, collections, documents and the URL registry built from them.

    One Site is constructed per build and handed to whatever needs it; a rebuild
    discards and recreates every document.
    """

    def __init__(self, settings, workers=None, now=None, log_file=None, quiet=False):
        self.settings = dict(settings)
        self.settings['collections'] = normalize_collections(settings.get('collections'))
        self.source = os.path.abspath(settings['source'])
        destination = os.path.expanduser(settings.get('destination') or './_site')
        self.destination = os.path.abspath(os.path.join(self.source, destination))
        self.workers = workers if workers is not None else (os.cpu_count() or 1)
        self.now = now
        self.time = None

        self.setup_logging(log_file=log_file, quiet=quiet)

        self.markdown_exts = markdown_extensions(settings)
        self.defaults = parse_defaults(settings.get('defaults'))
        self.include = set(settings.get('include') or [])
        self.exclusions = set(p.rstrip('/') for p in settings.get('exclude') or [])
        self.keep_files = set(settings.get('keep_files') or [])

        self.collections = []
        self.pages = []
        self.static_files = []
        self.documents = []
        self.registry = PathRegistry()
        self.variables = {}

        # Template capabilities are registered here and installed on first render
        self.markdown_parser = create_markdown_parser()
        self.capabilities = CapabilityRegistry()
        register_default_filters(self.capabilities, settings, self.markdown_parser)
        install_plugins(settings.get('plugins'), self.capabilities, settings)
        self.env = None
        self._layouts = {}

    @classmethod
    def from_directory(cls, source='.', flags=None, **kwargs):
        """Load the configuration in source (if any), apply flags, and create the site."""
        return cls(load_site_settings(source, flags), **kwargs)

    def setup_logging(self, log_file=None, quiet=False):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Permasite')
        self.logger.setLevel(logging.DEBUG if log_file else logging.INFO)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.WARNING if quiet else logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_formatter = logging.Formatter('%(message)s')
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if log_file:
            # File handler for all logs
            log_dir = os.path.dirname(os.path.abspath(log_file))
            os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    # Container capability

    def is_output_enabled(self):
        return True

    def path_prefix(self):
        return ''

    # Reading

    def exclude(self, rel_path):
        """Whether the walk skips rel_path (a file or directory relative to the source)."""
        rel_path = rel_path.replace(os.sep, '/')
        base = os.path.basename(rel_path)
        if rel_path in self.include or base in self.include:
            return False
        if rel_path == '.':
            return False
        if rel_path in self.exclusions:
            return True
        if base.startswith('.') or base.startswith('_'):
            return True
        abs_path = os.path.join(self.source, rel_path)
        return os.path.abspath(abs_path) == self.destination

    def walk(self):
        """List the source-relative paths of loose (non-collection) files, in walk order."""
        paths = []
        for dirpath, dirnames, filenames in os.walk(self.source):
            rel_dir = os.path.relpath(dirpath, self.source)
            dirnames[:] = sorted(
                d for d in dirnames
                if not self.exclude(os.path.normpath(os.path.join(rel_dir, d)))
            )
            for filename in sorted(filenames):
                rel_path = os.path.normpath(os.path.join(rel_dir, filename))
                if not self.exclude(rel_path):
                    paths.append(rel_path)
        return paths

    def read_context(self):
        return ReadContext(
            self.source,
            self.settings,
            self.defaults,
            self.markdown_exts,
            collections={c.name: c.data for c in self.collections},
            now=self.time,
        )

    def read_files(self):
        """
        Walk the source tree and every collection, read each file, and rebuild
        the path registry from the documents that are published.

        Raises:
            FrontMatterError, PermalinkError: a document could not be read
            PathCollisionError: two published documents share a URL
        """
        self.time = self.now or datetime.now()
        self.collections = [Collection(name, data)
                            for name, data in self.settings['collections'].items()]
        self.pages = []
        self.static_files = []
        self.registry = PathRegistry()

        tasks = [(rel_path, None) for rel_path in self.walk()]
        for collection in self.collections:
            tasks.extend((rel_path, collection.name) for rel_path in collection.walk(self.source))

        context = self.read_context()
        self.logger.info(f"Reading documents from {self.source}")
        results = self._read_documents(context, tasks)

        by_name = {c.name: c for c in self.collections}
        routed = []
        for (rel_path, name), document in zip(tasks, results):
            if name is None:
                if not is_eligible(document, context):
                    self.logger.debug(f"Skipping unpublished document: {rel_path}")
                    continue
                (self.static_files if document.static else self.pages).append(document)
                routed.append(document)
                continue

            collection = by_name[name]
            if document.static:
                self.logger.info(f"Skipping static file inside collection: {rel_path}")
                continue
            if not is_eligible(document, context):
                self.logger.debug(f"Skipping unpublished document: {rel_path}")
                continue
            collection.add(document)
            if collection.is_output_enabled():
                routed.append(document)

        self.registry.merge(routed)
        self.documents = self.registry.documents()
        self.init_template_variables()
        self.logger.info(f"Total routes: {len(self.registry)}")
        return self.documents

    def _read_documents(self, context, tasks):
        total_files = len(tasks)
        if self.workers > 1 and total_files >= PARALLEL_THRESHOLD:
            self.logger.debug(f"Using multiprocessing for {total_files} files with {self.workers} workers")
            return self._read_with_multiprocessing(context, tasks)

        self.logger.debug(f"Using single-threaded processing for {total_files} files")
        return [read_document(context, rel_path, name) for rel_path, name in tasks]

    def _read_with_multiprocessing(self, context, tasks):
        with ProcessPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(read_document, context, rel_path, name)
                       for rel_path, name in tasks]
            results = []
            try:
                for future in futures:
                    results.append(future.result())
            except Exception:
                # first failure aborts the pass; nothing has reached the registry yet
                for future in futures:
                    future.cancel()
                raise
        return results

    def init_template_variables(self):
        variables = dict(self.settings)
        variables['time'] = self.time
        variables['pages'] = [page.template_object() for page in self.pages]
        variables['static_files'] = [f.template_object() for f in self.static_files]
        for collection in self.collections:
            variables[collection.name] = collection.template_objects()
        self.variables = variables

    def file_url(self, rel_path):
        """Return the URL of the published document at rel_path, or None."""
        return self.registry.lookup(rel_path)

    def routes(self):
        return self.registry.routes()

    # Rendering

    def template_environment(self):
        """The Jinja2 environment; template capabilities are frozen once it exists."""
        if self.env is None:
            layouts_dir = os.path.join(self.source, self.settings.get('layouts_dir') or '_layouts')
            self.env = Environment(loader=FileSystemLoader(layouts_dir))
            self.capabilities.configure_environment(self.env)
        return self.env

    def load_layout(self, name):
        """Return (front matter, body) of a layout, or None if there is no such layout."""
        if name in self._layouts:
            return self._layouts[name]

        layouts_dir = os.path.join(self.source, self.settings.get('layouts_dir') or '_layouts')
        layout = None
        for candidate in (name, name + '.html'):
            layout_path = os.path.join(layouts_dir, candidate)
            if os.path.isfile(layout_path):
                with open(layout_path, 'r', encoding='utf-8') as f:
                    text = f.read()
                front_matter, body = split_front_matter(text, layout_path)
                layout = (front_matter or {}, body)
                break
        self._layouts[name] = layout
        return layout

    def render_document(self, document):
        """Render a non-static document to its output text."""
        env = self.template_environment()
        page = document.template_object()
        try:
            content = env.from_string(document.content or '').render(page=page, site=self.variables)
            if document.is_markdown(self.markdown_exts):
                content = self.markdown_parser(content)
            return self._apply_layouts(document, content, page)
        except (TemplateError, FrontMatterError) as e:
            raise RenderError(document.path, e)
        except (ValueError, TypeError) as e:
            # raised by filters given values they cannot handle
            raise RenderError(document.path, e)

    def _apply_layouts(self, document, content, page):
        env = self.template_environment()
        name = document.front_matter.get('layout')
        seen = set()
        while name:
            if name in seen:
                raise RenderError(document.path, f"layout '{name}' includes itself")
            seen.add(name)
            layout = self.load_layout(name)
            if layout is None:
                self.logger.warning(f"Layout '{name}' requested in {document.path} does not exist")
                break
            layout_fm, body = layout
            content = env.from_string(body).render(content=content, page=page,
                                                   site=self.variables, layout=layout_fm)
            name = layout_fm.get('layout')
        return content

    def output_path(self, url):
        """Map a URL to a file under the destination directory."""
        rel = url.lstrip('/')
        if not rel or url.endswith('/'):
            rel = os.path.join(rel, 'index.html')
        output_path = os.path.abspath(os.path.join(self.destination, rel))
        # Verify the final path is within the destination
        if not output_path.startswith(os.path.abspath(self.destination) + os.sep):
            raise RenderError(url, "output path escapes the destination directory")
        return output_path

    def write_document(self, document):
        output_path = self.output_path(document.permalink)
        os.makedirs(os.path.dirname(output_path), exist_ok=True)
        if document.static:
            shutil.copy2(os.path.join(self.source, document.path), output_path)
            self.logger.debug(f"Copied: {document.path} -> {output_path}")
            return output_path

        rendered = self.render_document(document)
        try:
            with open(output_path, 'w', encoding=self.settings.get('encoding') or 'utf-8') as f:
                f.write(rendered)
        except (IOError, OSError) as e:
            raise RenderError(document.path, f"cannot write {output_path}: {e}")
        self.logger.debug(f"Rendered: {document.path} -> {output_path}")
        return output_path

    def clean_destination(self):
        """Remove everything in the destination except the configured keep_files."""
        source = os.path.abspath(self.source)
        destination = os.path.abspath(self.destination)
        if source == destination or source.startswith(destination + os.sep):
            raise ConfigError(f"Destination {destination} would contain the source; refusing to clean it")
        if not os.path.isdir(destination):
            return

        preserved_items = []
        for item in os.listdir(destination):
            item_path = os.path.join(destination, item)
            if item in self.keep_files:
                preserved_items.append(item)
                continue
            if os.path.isdir(item_path) and not os.path.islink(item_path):
                shutil.rmtree(item_path)
            else:
                os.remove(item_path)
        if preserved_items:
            self.logger.debug(f"Preserved files: {', '.join(preserved_items)}")

    def build(self):
        """Read the site, clean the destination, and write every routed document."""
        start_time = time.time()
        self.read_files()
        self.clean_destination()
        os.makedirs(self.destination, exist_ok=True)

        self.logger.info(f"Writing site to {self.destination}")
        written = 0
        copied = 0
        for document in self.documents:
            self.write_document(document)
            if document.static:
                copied += 1
            else:
                written += 1

        self.logger.info(f"Total documents written: {written}")
        self.logger.info(f"Total static files copied: {copied}")
        self.logger.info(f"Site build completed in {time.time() - start_time:.6f} seconds.")
        return written + copied

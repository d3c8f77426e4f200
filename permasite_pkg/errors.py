"""
Exceptions raised while reading, routing and rendering a Permasite site.

Subclasses keep ``args`` equal to their constructor arguments so that errors
raised inside worker processes survive the trip back to the parent.
"""


class PermasiteError(Exception):
    """Base class for every error the site builder reports to its caller."""

    def __init__(self, message, *details):
        super().__init__(message, *details)
        self.message = message
        self.details = details

    def __str__(self):
        text = self.message
        for detail in self.details:
            text += f"\n  {detail}"
        return text


class ConfigError(PermasiteError):
    pass


class FrontMatterError(PermasiteError):
    def __init__(self, path, reason):
        super().__init__(f"Invalid front matter in {path}: {reason}")
        self.args = (path, reason)
        self.path = path
        self.reason = reason


class PermalinkError(PermasiteError):
    def __init__(self, pattern, token, path=None):
        where = f" (in {path})" if path else ""
        super().__init__(f"Unknown permalink variable ':{token}' in pattern '{pattern}'{where}")
        self.args = (pattern, token, path)
        self.pattern = pattern
        self.token = token
        self.path = path


class PathCollisionError(PermasiteError):
    def __init__(self, url, existing_path, new_path):
        super().__init__(
            f"Output URL {url} is claimed by more than one document",
            existing_path,
            new_path,
        )
        self.args = (url, existing_path, new_path)
        self.url = url
        self.paths = (existing_path, new_path)


class PluginError(PermasiteError):
    pass


class RenderError(PermasiteError):
    def __init__(self, path, reason):
        super().__init__(f"Failed to render {path}: {reason}")
        self.args = (path, reason)
        self.path = path
        self.reason = reason

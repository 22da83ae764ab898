"""Application-level exception types.

Convention:
- ``ConfigurationError``: for startup-time contract failures (missing
  environment variables, malformed key material, an empty token handed back
  by an identity provider).  Library code never catches it; it is meant to
  abort the calling process.
- ``cio.github.base.GitHubError`` and its subclasses: for failures reported
  by the GitHub API.  Callers branch on the concrete subclass.
"""

from __future__ import annotations


class ConfigurationError(Exception):
    """Raised when required configuration is missing or unusable."""

"""Database credentials and password lookup."""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from slugify import slugify

from ..errors import MissingPasswordError

logger = logging.getLogger(__name__)


def password_envvar(username: str) -> str:
    """Name of the environment variable holding the password of ``username``.

    The username is slugified with underscores and upper-cased, so
    ``test-user`` and ``test_user`` both map to ``OHLCV_TEST_USER_PASSWORD``.
    """
    slug = slugify(username, separator="_").upper()
    return f"OHLCV_{slug}_PASSWORD"


@dataclass(frozen=True)
class Credentials:
    """Username and optional password for a database connection."""

    username: str
    password: Optional[str] = field(default=None, repr=False)

    @property
    def has_password(self) -> bool:
        return self.password is not None

    def with_password(self, password: str) -> "Credentials":
        return replace(self, password=password)


def resolve(
    username: str,
    password: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Credentials:
    """Resolve credentials for ``username``.

    The password is taken from ``password`` if given, otherwise from the
    environment variable named by :func:`password_envvar`. If neither is
    set, the returned credentials carry no password and the caller has to
    prompt for one or fail.

    Args:
        username: Database user
        password: Explicit password, e.g. from the configuration file
        environ: Mapping to look the password up in (defaults to os.environ)

    Returns:
        Credentials, with or without a password
    """
    if password is not None:
        return Credentials(username, password)

    environ = os.environ if environ is None else environ
    envvar = password_envvar(username)
    env_password = environ.get(envvar)
    if env_password is not None:
        logger.debug(f"Using password for `{username}` from {envvar}")
    return Credentials(username, env_password)


def require_password(credentials: Credentials) -> str:
    """Return the password of ``credentials`` or raise MissingPasswordError."""
    if credentials.password is None:
        raise MissingPasswordError(credentials.username)
    return credentials.password

"""Schema manager dispatching to the configured database backend."""

import logging
from typing import Annotated, Callable, List, Mapping, Optional, Sequence, Union

from pydantic import Field

from ..errors import MissingPasswordError
from ..models.coin import Coin
from .credentials import Credentials, resolve
from .mysql import MySqlBackend
from .postgres import PostgresBackend
from .sqlite import SqliteBackend

logger = logging.getLogger(__name__)

# Closed set of supported engines, selected by the `type` field.
Backend = Annotated[
    Union[MySqlBackend, PostgresBackend, SqliteBackend],
    Field(discriminator="type"),
]

PasswordPrompt = Callable[[str], str]


def root_credentials(
    backend: Backend,
    prompt: Optional[PasswordPrompt] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[Credentials]:
    """Resolve the credentials of the backend's root user.

    The password is looked up in the environment first. If it is not set
    there and ``prompt`` is given, the user is asked for it.

    Args:
        backend: Configured database backend
        prompt: Callable asking for the password of a username
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Root credentials, or None if the backend has no root user

    Raises:
        MissingPasswordError: If the backend needs a password and none was found
    """
    username = backend.root_username()
    if username is None:
        return None

    credentials = resolve(username, environ=environ)
    if not credentials.has_password and prompt is not None:
        credentials = credentials.with_password(prompt(username))

    if not credentials.has_password and backend.requires_credentials():
        raise MissingPasswordError(username)
    return credentials


class SchemaManager:
    """Creates and drops the candle tables of the configured coins."""

    def __init__(
        self,
        backend: Backend,
        coins: Sequence[Coin],
        prompt: Optional[PasswordPrompt] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize schema manager.

        Args:
            backend: Database backend selected by the configuration
            coins: Coins whose tables are managed
            prompt: Optional password prompt used when the environment has no password
            environ: Environment mapping for password lookup
        """
        self.backend = backend
        self.coins: List[Coin] = list(coins)
        self.prompt = prompt
        self.environ = environ

    def _credentials(self, credentials: Optional[Credentials]) -> Optional[Credentials]:
        if credentials is not None or not self.backend.has_root():
            return credentials
        return root_credentials(self.backend, prompt=self.prompt, environ=self.environ)

    def init_schema(self, credentials: Optional[Credentials] = None) -> None:
        """Create the tables of all configured coins."""
        credentials = self._credentials(credentials)
        logger.info(f"Creating tables for {len(self.coins)} coins")
        self.backend.init_schema(credentials, self.coins)

    def drop_schema(
        self, credentials: Optional[Credentials] = None, all_tables: bool = False
    ) -> None:
        """Drop the tables of the configured coins, or every candle table."""
        credentials = self._credentials(credentials)
        if all_tables:
            logger.info("Dropping all candle tables")
            self.backend.drop_schema(credentials, None)
        else:
            logger.info(f"Dropping tables for {len(self.coins)} coins")
            self.backend.drop_schema(credentials, self.coins)

"""Command line tool for managing the candle database.

Commands:

- ``init``: create the candle tables of the configured coins
- ``drop``: drop the candle tables of the configured coins, or all of them
- ``range``: show the bucket-aligned range covering a time span
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
from dateutil import parser
from dotenv import load_dotenv

from .config import VERSION, Config
from .db.manager import SchemaManager
from .errors import OhlcvError
from .models.timeframe import Bound, Timeframe

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure process logging for the command line tool."""
    normalized = level.upper() if isinstance(level, str) else "INFO"
    if normalized not in logging.getLevelNamesMapping():
        normalized = "INFO"
    logging.basicConfig(level=normalized, format=LOG_FORMAT)


def ask_password(username: str) -> str:
    """Ask for the password of a database user, hiding the input."""
    return click.prompt(
        f"Enter password for the database user `{username}`",
        hide_input=True,
        err=True,
    )


def parse_time(value: str) -> datetime:
    """Parse a timestamp given on the command line; naive times are UTC."""
    try:
        timestamp = parser.isoparse(value)
    except (ValueError, TypeError):
        try:
            timestamp = parser.parse(value)
        except (ValueError, OverflowError) as e:
            raise click.BadParameter(f"Invalid time {value!r}: {e}") from e
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def _load_manager(config_path: Optional[Path]) -> SchemaManager:
    config = Config.load(config_path)
    engine_name, location = config.database.connection_info()
    logger.info(f"   - Database: {engine_name} {location}")
    logger.info(f"   - Coins: {[str(coin) for coin in config.get_coins()]}")
    return SchemaManager(config.database, config.get_coins(), prompt=ask_password)


config_option = click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Optional path to the configuration file.",
)


@click.group()
@click.version_option(VERSION, prog_name="ohlcv-ctl")
@click.option(
    "--log-level",
    default=lambda: os.getenv("OHLCV_LOG_LEVEL", "INFO"),
    show_default="INFO",
    help="Logging level (DEBUG, INFO, WARNING, ERROR).",
)
def cli(log_level: str) -> None:
    """Manage the OHLCV candle database."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    setup_logging(log_level)


@cli.command()
@config_option
def init(config_path: Optional[Path]) -> None:
    """Initialize the database tables."""
    logger.info("🗄️  Initializing database schema...")
    try:
        manager = _load_manager(config_path)
        manager.init_schema()
    except OhlcvError as e:
        logger.error(f"❌ Failed to initialize database: {e}")
        raise click.ClickException(str(e)) from e
    logger.info("✅ All tables initialized successfully")
    click.echo(f"Initialized {len(manager.coins)} table(s)")


@cli.command()
@click.option("-a", "--all", "all_tables", is_flag=True, help="Remove tables for all coins.")
@config_option
def drop(all_tables: bool, config_path: Optional[Path]) -> None:
    """Remove the database tables."""
    logger.info("🗑️  Dropping database schema...")
    try:
        manager = _load_manager(config_path)
        manager.drop_schema(all_tables=all_tables)
    except OhlcvError as e:
        logger.error(f"❌ Failed to drop tables: {e}")
        raise click.ClickException(str(e)) from e
    logger.info("✅ Tables dropped")
    click.echo("Dropped all candle tables" if all_tables else f"Dropped {len(manager.coins)} table(s)")


@cli.command(name="range")
@click.argument("timeframe", type=click.Choice([tf.value for tf in Timeframe]))
@click.option("--start", "start", default=None, help="Start time (ISO 8601, UTC if no offset).")
@click.option("--end", "end", default=None, help="End time (ISO 8601, UTC if no offset).")
@click.option("--exclude-start", is_flag=True, help="Exclude the start time from the range.")
@click.option("--include-end", is_flag=True, help="Include the end time in the range.")
def range_command(
    timeframe: str,
    start: Optional[str],
    end: Optional[str],
    exclude_start: bool,
    include_end: bool,
) -> None:
    """Show the bucket-aligned range covering START to END."""
    tf = Timeframe(timeframe)

    start_bound = Bound.unbounded()
    if start is not None:
        start_time = parse_time(start)
        start_bound = Bound.excluded(start_time) if exclude_start else Bound.included(start_time)

    end_bound = Bound.unbounded()
    if end is not None:
        end_time = parse_time(end)
        end_bound = Bound.included(end_time) if include_end else Bound.excluded(end_time)

    try:
        range_start, range_end = tf.range(start_bound, end_bound)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"start: {range_start.isoformat()}")
    click.echo(f"end:   {range_end.isoformat()}")


def main() -> None:
    """Main entry point for the command line tool."""
    cli(prog_name="ohlcv-ctl")


if __name__ == "__main__":
    main()

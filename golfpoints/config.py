"""Season configuration management."""

from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from .schemas import PointsConfig, PointsTable, SeasonConfig
from .utils import load_json

CONFIG_PATH = Path(__file__).parent / 'data' / 'season_config.json'


@lru_cache(maxsize=1)
def get_config() -> SeasonConfig:
    """
    Load season configuration from golfpoints/data/season_config.json.

    Configuration is cached after first load.

    Returns:
        SeasonConfig object with validated settings

    Raises:
        FileNotFoundError: If season_config.json doesn't exist
        ValueError: If config file has invalid structure

    Example:
        from golfpoints.config import get_config
        config = get_config()
        print(f"Best {config.events_counted} events count")
    """
    return load_json(CONFIG_PATH, schema=SeasonConfig)


def get_current_season() -> int:
    """Get the current season from config."""
    return get_config().season


def get_events_counted() -> int:
    """Get the number of best events counted towards a season total."""
    return get_config().events_counted


def get_recalculation_workers() -> int:
    """Get the worker pool size used by recalculation runs."""
    return get_config().recalculation_workers


def get_team_separator() -> str:
    """Get the character that splits a team entry into player names."""
    return get_config().team_separator


def get_default_points_config() -> PointsConfig:
    """
    Build version 1 of the points configuration from the default tables.

    Storage seeds itself with this; later edits go through the storage's
    points store and bump the version.
    """
    tables = {
        category: PointsTable.from_points(points)
        for category, points in get_config().points_tables.items()
    }
    return PointsConfig(version=1, updated_at=datetime.now(timezone.utc), tables=tables)


def clear_config_cache() -> None:
    """
    Clear the configuration cache.

    Use this if the config file is modified during runtime
    and you need to reload it.
    """
    get_config.cache_clear()

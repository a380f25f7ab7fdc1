from __future__ import annotations

from pathlib import Path
from dotenv import load_dotenv

from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv(override=True)


class Settings(BaseSettings):
    """Catalog aggregation configuration.

    Fields
    ------
    catalog_file
        Canonical catalog document ``{lastUpdated, totalCount, entries}``.
    collections_dir
        Root of the ``<collection>/<period>.json`` appearance tree.
    awards_file
        Award document whose ``films`` map is keyed by normalized title + year.
    availability_file
        Availability snapshot ``{lastUpdated, country, entries}``.
    merged_file
        Output path for the unified data set.
    enabled_platforms
        Provider names that count towards ``hasStreaming``/``hasRent``/``hasBuy``,
        in display preference order.  Empty means every provider counts.
    poster_base_url
        Prefix joined with a catalog entry's raw ``posterPath``.
    cast_limit
        Maximum number of cast members kept on a unified entry.
    load_workers
        Threads used to load the independent sources concurrently.
    """

    catalog_file: Path = Field(Path("data/films.json"), env="CATALOG_FILE")
    collections_dir: Path = Field(Path("data/festivals"), env="COLLECTIONS_DIR")
    awards_file: Path = Field(Path("data/awards/awards.json"), env="AWARDS_FILE")
    availability_file: Path = Field(
        Path("data/streaming/availability.json"), env="AVAILABILITY_FILE"
    )
    merged_file: Path = Field(Path("data/merged-films.json"), env="MERGED_FILE")

    enabled_platforms: list[str] = Field(default_factory=list, env="ENABLED_PLATFORMS")

    # TMDB serves posters at fixed widths; w500 is what the cards render.
    poster_base_url: str = Field("https://image.tmdb.org/t/p/w500", env="POSTER_BASE_URL")
    cast_limit: int = Field(6, env="CAST_LIMIT")
    load_workers: int = Field(4, env="LOAD_WORKERS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()

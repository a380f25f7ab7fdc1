"""Settings shared by *catalog* and *sharing*.

Both command-line entry points (``festival-catalog`` and ``festival-share``)
read this module before doing any work and hand ``log_level`` to
:func:`src.common.log_setup.configure_logging`, so one ``LOG_LEVEL`` in the
environment or ``.env`` controls how chatty aggregation, registry generation
and share-token decoding are.  Package-specific paths and limits live in
``src/catalog/settings.py`` and ``src/sharing/settings.py``.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings
from pydantic import Field
from dotenv import load_dotenv

load_dotenv(override=True)

class Settings(BaseSettings):
    """Configuration common to every CLI.

    Fields
    ------
    log_level
        Root logger level name (``DEBUG``, ``INFO``, ...).  Decode rejections
        of share tokens are logged at ``INFO``; per-key literal fallbacks only
        at ``DEBUG``.
    """

    log_level: str = Field("INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()

"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via DBTCACHE_* env vars.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes"}


@dataclass
class ContainerConfig:
    """Project cache configuration."""

    # Descriptor whose presence marks a directory as a dbt project.
    project_file: str = "dbt_project.yml"
    # Installed-packages directory; pruned from discovery and used to
    # detect vendored package membership.
    modules_dir: str = "dbt_modules"
    # Path segment of virtualenv package dirs nested inside a project.
    ignore_token: str = "site-packages"

    # Quiescence window after a top-level creation before rebuilding.
    create_debounce_seconds: float = 2.0

    # Legacy ordering guard: refuse observers until the first rebuild.
    require_cache_for_providers: bool = False

    # Interpreter used for the dbt installation check.
    python_path: str | None = None
    dbt_check_timeout_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ContainerConfig:
        """Load configuration from DBTCACHE_* environment variables."""
        overrides = {
            k: v for k, v in os.environ.items() if k.startswith("DBTCACHE_")
        }
        if overrides:
            logger.info(
                "ContainerConfig.from_env: DBTCACHE_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(overrides.items())),
            )
        else:
            logger.debug("ContainerConfig.from_env: no DBTCACHE_* env vars set, using defaults")

        config = cls(
            project_file=os.getenv("DBTCACHE_PROJECT_FILE", cls.project_file),
            modules_dir=os.getenv("DBTCACHE_MODULES_DIR", cls.modules_dir),
            ignore_token=os.getenv("DBTCACHE_IGNORE_TOKEN", cls.ignore_token),
            create_debounce_seconds=float(os.getenv(
                "DBTCACHE_CREATE_DEBOUNCE", str(cls.create_debounce_seconds)
            )),
            require_cache_for_providers=(
                os.getenv("DBTCACHE_REQUIRE_CACHE_FOR_PROVIDERS", "").lower()
                in _TRUTHY
            ),
            python_path=os.getenv("DBTCACHE_PYTHON_PATH") or None,
            dbt_check_timeout_seconds=float(os.getenv(
                "DBTCACHE_DBT_CHECK_TIMEOUT",
                str(cls.dbt_check_timeout_seconds),
            )),
            log_level=os.getenv("DBTCACHE_LOG_LEVEL", cls.log_level),
        )
        logger.info(
            "ContainerConfig.from_env: project_file=%s modules_dir=%s debounce=%.2fs",
            config.project_file, config.modules_dir,
            config.create_debounce_seconds,
        )
        return config

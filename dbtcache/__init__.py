"""dbtcache: live index of dbt projects across workspace roots."""
from __future__ import annotations

__version__ = "0.1.0"

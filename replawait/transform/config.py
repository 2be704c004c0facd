"""Configuration for the top-level await rewrite."""

from __future__ import annotations

import os as _os
from dataclasses import dataclass

from .constants import DEFAULT_CACHE_SIZE, ENV_CACHE_SIZE, ENV_RETURN_LAST_EXPRESSION


@dataclass
class TransformConfig:
    """Configuration for ``TopLevelAwaitTransformer``.

    Attributes:
        return_last_expression: Rewrite a trailing expression statement into
            ``return (...)`` so the wrapper resolves to its value.
        cache_size: Capacity of the per-transformer result LRU. ``None`` or
            ``0`` disables caching.
    """

    return_last_expression: bool = True
    cache_size: int | None = DEFAULT_CACHE_SIZE

    @classmethod
    def from_env(cls) -> "TransformConfig":
        """Build a config from defaults plus ``REPLAWAIT_*`` environment overrides.

        Unparseable values fall back to the defaults rather than raising.
        """
        config = cls()

        env_return = _os.getenv(ENV_RETURN_LAST_EXPRESSION)
        if env_return is not None:
            config.return_last_expression = env_return.lower() in {"1", "true", "yes"}

        env_cache = _os.getenv(ENV_CACHE_SIZE)
        if env_cache is not None:
            try:
                config.cache_size = max(int(env_cache), 0)
            except ValueError:
                config.cache_size = DEFAULT_CACHE_SIZE

        return config

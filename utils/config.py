"""
Runtime settings read from the environment (and config.env, when present)
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass
class Settings:
    database_path: str = './data/datasets.db'
    store_timeout_seconds: float = 5.0
    recommendation_workers: int = 4
    search_result_limit: int = 20
    default_recommendation_limit: int = 5
    web_host: str = '0.0.0.0'
    web_port: int = 8000

    @classmethod
    def from_environment(cls, env_file: str = 'config.env') -> 'Settings':
        """
        Build settings from environment variables

        Args:
            env_file: dotenv file loaded first; existing variables win
        """
        load_dotenv(env_file)

        return cls(
            database_path=os.getenv('DATABASE_PATH', cls.database_path),
            store_timeout_seconds=_env_float('STORE_TIMEOUT_SECONDS', cls.store_timeout_seconds),
            recommendation_workers=max(1, _env_int('RECOMMENDATION_WORKERS', cls.recommendation_workers)),
            search_result_limit=max(1, _env_int('SEARCH_RESULT_LIMIT', cls.search_result_limit)),
            default_recommendation_limit=max(1, _env_int('DEFAULT_RECOMMENDATION_LIMIT',
                                                         cls.default_recommendation_limit)),
            web_host=os.getenv('WEB_HOST', cls.web_host),
            web_port=_env_int('WEB_PORT', cls.web_port)
        )

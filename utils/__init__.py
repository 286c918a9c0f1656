"""
Utility modules for the dataset discovery service
"""

from .logging_config import (
    setup_logging,
    get_contextual_logger,
    log_store_operation,
    log_strategy_outcome,
    init_from_environment
)
from .config import Settings

__all__ = [
    'setup_logging',
    'get_contextual_logger',
    'log_store_operation',
    'log_strategy_outcome',
    'init_from_environment',
    'Settings'
]

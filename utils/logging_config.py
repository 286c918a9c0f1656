"""
Structured JSON Logging Configuration for the dataset discovery service

- Machine-readable JSON format for log analysis platforms
- Contextual information for effective debugging
- Standard log levels with detailed messages
"""

import logging
import json
import sys
import os
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs

    Every entry carries timestamp, level, logger, location and any
    context fields passed with a 'ctx_' prefix.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON"""

        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'thread': record.thread,
            'process': record.process
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        for key, value in record.__dict__.items():
            if key.startswith('ctx_'):
                # Remove 'ctx_' prefix for cleaner JSON
                log_entry[key[4:]] = value

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds contextual information to log records

    Allows adding request-specific context like dataset IDs or query text.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})

        for key, value in self.extra.items():
            extra[f'ctx_{key}'] = value

        kwargs['extra'] = extra
        return msg, kwargs


def setup_logging(
    log_level: str = 'INFO',
    log_file: Optional[str] = None,
    enable_console: bool = True,
    enable_json: bool = True
) -> None:
    """
    Setup structured logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (None = no file logging)
        enable_console: Whether to enable console logging
        enable_json: Whether to use JSON formatting
    """

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    if enable_json:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    configure_application_loggers()


def configure_application_loggers():
    """Configure application-specific loggers with appropriate levels"""

    app_loggers = [
        'search.query_processor',
        'search.search_engine',
        'recommend.engine',
        'recommend.strategies',
        'storage.database',
        'cli.main',
        'web.app'
    ]

    for logger_name in app_loggers:
        logging.getLogger(logger_name).setLevel(logging.NOTSET)

    # External library loggers (reduce noise)
    external_loggers = {
        'uvicorn.access': logging.WARNING,
        'httpx': logging.WARNING,
        'asyncio': logging.WARNING
    }

    for logger_name, level in external_loggers.items():
        logging.getLogger(logger_name).setLevel(level)


def get_contextual_logger(name: str, **context) -> ContextAdapter:
    """
    Get a logger with contextual information

    Example:
        logger = get_contextual_logger('recommend.engine', kind='related',
                                       dataset_id='abs-labour-force')
        logger.info("Merged recommendations", extra={'ctx_count': 5})
    """
    return ContextAdapter(logging.getLogger(name), context)


def log_store_operation(
    logger: logging.Logger,
    operation: str,
    table: str,
    record_count: int,
    duration: float,
    success: bool = True,
    error: Optional[str] = None
) -> None:
    """
    Log a dataset store operation with performance metrics

    Successful reads are logged at DEBUG to keep request paths quiet.

    Args:
        logger: Logger instance
        operation: Store operation name (find_by_domain, INSERT, ...)
        table: Target table name
        record_count: Number of rows returned or written
        duration: Operation duration in seconds
        success: Whether operation succeeded
        error: Error message if operation failed
    """

    log_data = {
        'extra': {
            'ctx_db_operation': operation,
            'ctx_db_table': table,
            'ctx_db_record_count': record_count,
            'ctx_db_duration': duration,
            'ctx_db_success': success
        }
    }

    if error:
        log_data['extra']['ctx_db_error'] = error

    if success:
        message = f"Store {operation} completed: {record_count} rows from {table} ({duration:.3f}s)"
        logger.debug(message, **log_data)
    else:
        message = f"Store {operation} failed: {table} - {error}"
        logger.error(message, **log_data)


def log_strategy_outcome(
    logger: logging.Logger,
    strategy: str,
    candidate_count: int,
    duration: float,
    error: Optional[str] = None
) -> None:
    """
    Log the outcome of one recommendation strategy

    A failed or timed-out strategy is a warning: it contributes nothing
    and the merge continues with the others.

    Args:
        logger: Logger instance
        strategy: Strategy name
        candidate_count: Number of recommendations produced
        duration: Strategy duration in seconds
        error: Error message if the strategy failed or timed out
    """

    log_data = {
        'extra': {
            'ctx_strategy': strategy,
            'ctx_strategy_candidates': candidate_count,
            'ctx_strategy_duration': duration,
            'ctx_strategy_success': error is None
        }
    }

    if error:
        log_data['extra']['ctx_strategy_error'] = error
        logger.warning(f"Strategy {strategy} degraded to no results: {error}", **log_data)
    else:
        logger.debug(f"Strategy {strategy} produced {candidate_count} candidates ({duration:.3f}s)", **log_data)


def init_from_environment():
    """Initialize logging configuration from environment variables"""

    log_level = os.getenv('LOG_LEVEL', 'INFO')
    log_file = os.getenv('LOG_FILE', './logs/discovery.log') or None
    enable_json = os.getenv('LOG_FORMAT', 'json').lower() == 'json'

    setup_logging(
        log_level=log_level,
        log_file=log_file,
        enable_console=True,
        enable_json=enable_json
    )

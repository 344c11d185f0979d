# ============================================================================
# CONTEXT - LOGGING
# ============================================================================
# STATUS: Shared - Used by the loader package, health checks and triggers
# PURPOSE: JSON-only structured logging for Azure Functions with Application Insights
# EXPORTS: ComponentType, LogLevel, ComponentConfig, JSONFormatter, LoggerFactory
# INTERFACES: Dataclass models, enums, factory, JSON formatter
# DEPENDENCIES: enum, dataclasses, typing, datetime, logging, json (stdlib only!)
# SOURCE: Loader architecture layers define component types
# PATTERNS: JSON-only output, Azure Functions integration
# ENTRY_POINTS: LoggerFactory.create_logger()
# ============================================================================

"""
Unified Logger System - Schemas and Factory

Component-specific JSON loggers for the OGC features loader. Every log
record carries `custom_dimensions` (component type/name plus any
per-call dimensions such as session id or strategy) so Application
Insights can filter a single load session end to end.

Design Principles:
- Strong typing with dataclasses (stdlib only)
- Enum safety for categories
- Component-specific loggers
- Clean factory pattern
- No external dependencies

Example:
    logger = LoggerFactory.create_logger(ComponentType.SERVICE, "OGCFeaturesVectorSource")
    logger.info("Load finished", extra={'custom_dimensions': {'session_id': sid}})
"""

import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


# ============================================================================
# COMPONENT TYPES - Aligned with loader architecture
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the loader layers.

    Each layer has specific logging needs and levels.
    """
    SERVICE = "service"        # Orchestration (vector source, search source)
    STRATEGY = "strategy"      # Paging strategies (next, offset)
    CACHE = "cache"            # Metadata / capability caches
    TRIGGER = "trigger"        # HTTP entry points
    ADAPTER = "adapter"        # External integration (health probes)


# ============================================================================
# LOG LEVELS - Standard Python levels with enum safety
# ============================================================================

class LogLevel(Enum):
    """
    Standard Python log levels as enum for type safety.
    """
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)


# ============================================================================
# COMPONENT CONFIGURATION - Per-component settings
# ============================================================================

@dataclass
class ComponentConfig:
    """
    Configuration for component-specific logging.
    """
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO


# ============================================================================
# JSON FORMATTER - Structured logging for Azure Functions
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in Azure Functions.
    Outputs logs in a format that Application Insights can automatically parse.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON for Application Insights.

        Args:
            record: Python LogRecord to format

        Returns:
            JSON string with structured log data
        """
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY - Creates component-specific loggers
# ============================================================================

class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(
            ComponentType.STRATEGY,
            "OffsetStrategy"
        )
        logger.debug("Loading round")
    """

    # Check environment variable for debug mode
    default_level = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO

    DEFAULT_CONFIGS = {
        ComponentType.SERVICE: ComponentConfig(ComponentType.SERVICE, log_level=default_level),
        ComponentType.STRATEGY: ComponentConfig(ComponentType.STRATEGY, log_level=default_level),
        ComponentType.CACHE: ComponentConfig(ComponentType.CACHE, log_level=default_level),
        ComponentType.TRIGGER: ComponentConfig(ComponentType.TRIGGER, log_level=default_level),
        ComponentType.ADAPTER: ComponentConfig(ComponentType.ADAPTER, log_level=default_level),
    }

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        config: Optional[ComponentConfig] = None
    ) -> logging.Logger:
        """
        Create a logger for a specific component.

        Per-call dimensions (session id, strategy, ...) are passed with
        extra={'custom_dimensions': {...}} and merged with the component's.

        Args:
            component_type: Type of component
            name: Component name (e.g., "NextStrategy")
            config: Optional custom configuration

        Returns:
            Configured Python logger
        """
        if config is None:
            config = cls.DEFAULT_CONFIGS.get(
                component_type,
                ComponentConfig(component_type=component_type)
            )

        logger_name = f"{component_type.value}.{name}"
        logger = logging.getLogger(logger_name)

        log_level = config.log_level.to_python_level()
        logger.setLevel(log_level)

        # Remove existing handlers to avoid duplicates
        logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

        # Allow propagation to Azure's root logger for Application Insights
        logger.propagate = True

        original_log = logger._log

        def log_with_context(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
            """Wrapper to inject context as custom dimensions."""
            if extra is None:
                extra = {}

            custom_dims = {
                'component_type': component_type.value,
                'component_name': name
            }

            if 'custom_dimensions' in extra:
                custom_dims.update(extra['custom_dimensions'])

            extra['custom_dimensions'] = custom_dims

            original_log(level, msg, args, exc_info=exc_info, extra=extra,
                         stack_info=stack_info, stacklevel=stacklevel)

        logger._log = log_with_context

        return logger


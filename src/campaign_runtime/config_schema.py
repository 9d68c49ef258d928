"""
JSON schemas for configuration validation.
"""

COMPILER_SCHEMA = {
    "type": "object",
    "properties": {
        "strict_acyclic": {"type": "boolean"},
        "default_delay": {"type": "integer", "minimum": 0},
        "default_delay_unit": {"type": "string", "enum": ["minutes", "hours", "days", "weeks"]},
        "send_window_start": {"type": "string", "pattern": "^[0-2][0-9]:[0-5][0-9]$"},
        "send_window_end": {"type": "string", "pattern": "^[0-2][0-9]:[0-5][0-9]$"},
        "active_days": {"type": "array", "items": {"type": "string"}},
        "search_max_results": {"type": "integer", "minimum": 1},
        "search_connection_degree": {"type": "string"},
    },
    "additionalProperties": False,
}

SCHEDULER_SCHEMA = {
    "type": "object",
    "properties": {
        "default_confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
    },
    "additionalProperties": False,
}

GATE_SCHEMA = {
    "type": "object",
    "properties": {
        "autonomy_level": {
            "type": "string",
            "enum": ["manual_approval", "semi_autonomous", "fully_autonomous"],
        },
        "approval_threshold": {"type": "number", "minimum": 0.0, "maximum": 1.0},
        "approval_ttl_seconds": {"type": "number", "exclusiveMinimum": 0},
        "prioritize_delay_seconds": {"type": "number", "minimum": 0},
        "preview_max_chars": {"type": "integer", "minimum": 1},
        "restricted_channels": {"type": "array", "items": {"type": "string"}},
        "channel_confidence": {
            "type": "object",
            "additionalProperties": {"type": "number", "minimum": 0.0, "maximum": 1.0},
        },
        "fallback_confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "name": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

STORAGE_SCHEMA = {
    "type": "object",
    "properties": {
        "backend": {"type": "string", "enum": ["memory", "postgres"]},
        "pg_dsn": {"type": "string"},
        "pool_min_size": {"type": "integer", "minimum": 0},
        "pool_max_size": {"type": "integer", "minimum": 1},
        "table_prefix": {"type": "string", "pattern": "^[a-zA-Z0-9_]*$"},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "compiler": COMPILER_SCHEMA,
        "scheduler": SCHEDULER_SCHEMA,
        "gate": GATE_SCHEMA,
        "logging": LOGGING_SCHEMA,
        "storage": STORAGE_SCHEMA,
    },
    "additionalProperties": False,
}

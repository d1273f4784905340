"""BigQuery specific constants."""

BACKEND_NAME = "bigquery"

# Reserved column maintained by imports and used by time-range filters.
TIMESTAMP_COLUMN = "_timestamp"

STRING_TYPE = "STRING"

# Native types that cannot be used in filters.
UNSUPPORTED_FILTER_TYPES = frozenset({
    "ARRAY",
    "STRUCT",
    "BYTES",
    "GEOGRAPHY",
    "INTERVAL",
    "JSON",
})

# Native types rendered unchanged by preview truncation.
TEMPORAL_TYPES = frozenset({"TIME", "TIMESTAMP", "DATETIME"})

# Native types that cannot appear in ORDER BY.
UNORDERABLE_TYPES = frozenset({"ARRAY", "STRUCT", "GEOGRAPHY", "JSON"})

# Aliases collapsed to one base type when comparing column definitions.
TYPE_ALIASES = {
    "INT": "INTEGER",
    "SMALLINT": "INTEGER",
    "BIGINT": "INTEGER",
    "TINYINT": "INTEGER",
    "BYTEINT": "INTEGER",
    "INT64": "INTEGER",
    "DECIMAL": "NUMERIC",
    "BIGDECIMAL": "BIGNUMERIC",
    "FLOAT": "FLOAT64",
    "BOOL": "BOOLEAN",
}

# Error reasons in a BigQuery error payload that are worth retrying.
RETRYABLE_REASONS = frozenset({
    "rateLimitExceeded",
    "userRateLimitExceeded",
    "backendError",
    "jobRateLimitExceeded",
})

RETRYABLE_STATUS_CODES = frozenset({429, 500, 503, 401})

TOO_MANY_REQUESTS_CODES = frozenset({429, 409})

RETRYABLE_MESSAGES = (
    "IAM setPolicy failed for Dataset",
    "bigquery.jobs.create",
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
PREVIEW_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

DEFAULT_QUERY_TIMEOUT_SECONDS = 60 * 60

# Legacy REST type names reported by the table API.
REST_TYPE_NAMES = {
    "INTEGER": "INT64",
    "FLOAT": "FLOAT64",
    "BOOLEAN": "BOOL",
    "RECORD": "STRUCT",
}

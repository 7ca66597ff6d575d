"""
Constants for LLM configuration and usage accounting.

This module defines constants for provider configuration, batch processing,
cost accounting and alerting to ensure consistency across the application.
These constants are used as defaults in settings.py and should be referenced
by all services that need them.
"""

# OpenAI model constants
OPENAI_MODEL_NAME = "gpt-4o"
OPENAI_TEMPERATURE = 0.2
OPENAI_MAX_TOKENS = 1200

# Gemini model constants
GEMINI_MODEL_NAME = "gemini-2.5-flash"
GEMINI_TEMPERATURE = 0.2
GEMINI_MAX_TOKENS = 1200
GEMINI_TOP_P = 0.95

DEFAULT_PROVIDER = "openai"
SUPPORTED_PROVIDERS = ("openai", "gemini")

# Provider config bounds
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0
MIN_MAX_TOKENS = 100
MAX_MAX_TOKENS = 4000

# Timeout constants (milliseconds, as configured through the environment)
DEFAULT_TIMEOUT_MS = 45000
MIN_TIMEOUT_MS = 5000
MAX_TIMEOUT_MS = 300000

# Health check latency above which a provider is reported as degraded
HEALTH_CHECK_DEGRADED_MS = 5000

# Batch processing defaults
DEFAULT_PARALLELISM = 10
DEFAULT_RETRY_FAILURES = True
DEFAULT_PRIORITY = "medium"
DEFAULT_RETRY_ATTEMPTS = 2  # additional attempts after the first call
MAX_RETRY_ATTEMPTS = 5
DEFAULT_RETRY_BASE_DELAY = 0.5  # seconds
DEFAULT_RETRY_MAX_DELAY = 8.0  # seconds

# Input limits
MAX_RESPONSE_LENGTH = 5000
MAX_QUESTION_LENGTH = 1000
NOT_SPECIFIED = "Not specified"
DEFAULT_QUESTION_CONTEXT = "AI readiness assessment"

# Response quality heuristics
MIN_ANSWER_LENGTH = 20
MAX_ANSWER_LENGTH = 2000
MAX_THEMES = 8

# Aggregation
THEME_FREQUENCY_LIMIT = 20

# Cost table in cents per 1K tokens
TOKEN_COSTS_CENTS_PER_1K = {
    "gpt-4o": "0.3",
    "gpt-4o-mini": "0.015",
    "gpt-4-turbo": "0.3",
    "gpt-3.5-turbo": "0.05",
    "claude-3-5-sonnet-20241022": "0.3",
    "claude-3-haiku-20240307": "0.025",
    "claude-3-opus-20240229": "1.5",
    "gemini-2.5-flash": "0.03",
    "gemini-2.5-pro": "0.25",
}
DEFAULT_TOKEN_COST_CENTS_PER_1K = "0.3"

# Budget and alerting defaults
DEFAULT_MONTHLY_BUDGET_CENTS = 200000
DEFAULT_DAILY_LIMIT_CENTS = 10000
MONTHLY_BUDGET_CRITICAL_PCT = 90.0
MONTHLY_BUDGET_WARNING_PCT = 75.0
ERROR_RATE_WARNING_PCT = 20.0
ERROR_RATE_WINDOW = 50
ERROR_RATE_MIN_ENTRIES = 10

# Report timeframes in days
TIMEFRAME_DAYS = {"1d": 1, "7d": 7, "30d": 30, "90d": 90}
DEFAULT_TIMEFRAME = "30d"

# Environment variable names
ENV_LLM_PROVIDER = "LLM_PROVIDER"
ENV_OPENAI_API_KEY = "OPENAI_API_KEY"
ENV_OPENAI_MODEL = "OPENAI_MODEL"
ENV_GEMINI_API_KEY = "GEMINI_API_KEY"
ENV_GEMINI_MODEL = "GEMINI_MODEL"
ENV_LLM_TEMPERATURE = "LLM_TEMPERATURE"
ENV_LLM_MAX_TOKENS = "LLM_MAX_TOKENS"
ENV_LLM_TIMEOUT_MS = "LLM_TIMEOUT_MS"
ENV_LLM_RETRY_ATTEMPTS = "LLM_RETRY_ATTEMPTS"
ENV_LLM_BATCH_PARALLELISM = "LLM_BATCH_PARALLELISM"
ENV_LLM_RETRY_FAILURES = "LLM_RETRY_FAILURES"
ENV_LLM_BATCH_PRIORITY = "LLM_BATCH_PRIORITY"
ENV_DEFAULT_MONTHLY_BUDGET_CENTS = "DEFAULT_MONTHLY_BUDGET_CENTS"
ENV_DEFAULT_DAILY_LIMIT_CENTS = "DEFAULT_DAILY_LIMIT_CENTS"
ENV_API_USAGE_ALERTS_ENABLED = "API_USAGE_ALERTS_ENABLED"
ENV_ALERT_MONTHLY_CRITICAL_PCT = "ALERT_MONTHLY_CRITICAL_PCT"
ENV_ALERT_MONTHLY_WARNING_PCT = "ALERT_MONTHLY_WARNING_PCT"
ENV_ALERT_ERROR_RATE_PCT = "ALERT_ERROR_RATE_PCT"
ENV_ALERT_ERROR_RATE_WINDOW = "ALERT_ERROR_RATE_WINDOW"
ENV_ALERT_ERROR_RATE_MIN_ENTRIES = "ALERT_ERROR_RATE_MIN_ENTRIES"
ENV_DATABASE_URL = "DATABASE_URL"

DEFAULT_DATABASE_URL = "sqlite:///./readiness_analytics.db"

"""Default configuration values for Glance.

All hard-coded names, limits and timings live here so modules can import
them instead of repeating literals.

Usage:
    from glance.config.defaults import (
        ARTIFACT_FILENAME,
        DEFAULT_MAX_FILE_BYTES,
        BACKOFF_BASE_DELAY,
    )
"""

from __future__ import annotations

# =============================================================================
# Artifacts
# =============================================================================

ARTIFACT_FILENAME = ".glance.md"
# Read-only fallback while older trees still carry the previous name.
LEGACY_ARTIFACT_FILENAME = "glance.md"
ARTIFACT_FILENAMES = (ARTIFACT_FILENAME, LEGACY_ARTIFACT_FILENAME)
ARTIFACT_FILE_MODE = 0o600

EMPTY_DIRECTORY_STUB = "# Empty directory\n\nThis directory has no entries.\n"
FILTERED_DIRECTORY_STUB = (
    "# No analyzable text content\n\n"
    "This directory only contains hidden, ignored, binary or otherwise "
    "filtered entries.\n"
)


# =============================================================================
# Scanning
# =============================================================================

IGNORE_FILENAME = ".gitignore"
EXCLUDED_DIR_NAMES = frozenset({"node_modules", "__pycache__"})


# =============================================================================
# File Reading
# =============================================================================

DEFAULT_MAX_FILE_BYTES = 5 * 1024 * 1024
TRUNCATION_MARKER = "...(truncated)"
BINARY_SNIFF_BYTES = 512


# =============================================================================
# Retry / Backoff
# =============================================================================

DEFAULT_MAX_OUTER_ATTEMPTS = 3
BACKOFF_BASE_DELAY = 0.25  # seconds
BACKOFF_MAX_DELAY = 4.0  # seconds
BACKOFF_MULTIPLIER = 2.0
BACKOFF_JITTER = 0.2  # +/-20%

RETRYABLE_STATUS_CODES = (408, 429, 500, 502, 503, 504)


# =============================================================================
# Providers
# =============================================================================

GEMINI_API_KEY_ENV = "GEMINI_API_KEY"
OPENROUTER_API_KEY_ENV = "OPENROUTER_API_KEY"

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

DEFAULT_PRIMARY_MODEL = "gemini-3-flash-preview"
DEFAULT_STABLE_MODEL = "gemini-2.5-flash"
DEFAULT_FALLBACK_MODEL = "x-ai/grok-4.1-fast"

DEFAULT_MAX_OUTPUT_TOKENS = 2048
DEFAULT_REQUEST_TIMEOUT = 60.0  # seconds
DEFAULT_CONNECT_TIMEOUT = 10.0  # seconds
DEFAULT_TEMPERATURE = 0.2

# Rough chars-per-token ratio for providers without a counting endpoint
CHARS_PER_TOKEN = 4


# =============================================================================
# Prompt
# =============================================================================

PROMPT_FILENAME = "prompt.txt"

"""
Standard span attributes for repomigrate.

Attribute constants used across all components for consistent span
naming. Span names follow ``repomigrate.<component>.<operation>``.
"""

# =============================================================================
# Workflow Attributes
# =============================================================================

ATTR_WORKFLOW_NAME = "repomigrate.workflow.name"
"""Name of the workflow being run (string)."""

ATTR_RUN_ID = "repomigrate.run.id"
"""Unique identifier of a migration run (UUID string)."""

ATTR_RUN_MODE = "repomigrate.run.mode"
"""Run mode, single change or iterative (string)."""

ATTR_EXIT_CODE = "repomigrate.run.exit_code"
"""Terminal exit code of a run (string)."""

# =============================================================================
# Change Attributes
# =============================================================================

ATTR_CHANGE_REF = "repomigrate.change.ref"
"""Origin identifier of the change being migrated (string)."""

ATTR_CHANGE_STATE = "repomigrate.change.state"
"""Final state of a change migration (string)."""

ATTR_EFFECT_COUNT = "repomigrate.effect.count"
"""Number of destination effects recorded (integer)."""

# =============================================================================
# Cache Attributes
# =============================================================================

ATTR_REPO_URL = "repomigrate.repo.url"
"""Remote repository URL (string)."""

ATTR_CACHE_KEY = "repomigrate.cache.key"
"""Cache key derived from the normalized URL (string)."""

ATTR_CACHE_HIT = "repomigrate.cache.hit"
"""Whether a valid repository already existed (boolean)."""

ATTR_LOCK_KEY = "repomigrate.lock.key"
"""Lock key (string)."""

ATTR_LOCK_TIMEOUT = "repomigrate.lock.timeout"
"""Lock acquisition timeout in seconds, -1 for none (float)."""

# =============================================================================
# Review / Monitor Attributes
# =============================================================================

ATTR_REVIEW_ID = "repomigrate.review.id"
"""Remote review identifier (string)."""

ATTR_REVIEW_STATUS = "repomigrate.review.status"
"""Review status returned by the review system (string)."""

ATTR_EVENT_TYPE = "repomigrate.event.type"
"""Lifecycle event class name (string)."""

ATTR_MONITOR_NAME = "repomigrate.monitor.name"
"""Name of the event monitor being invoked (string)."""

ATTR_MONITOR_COUNT = "repomigrate.monitor.count"
"""Number of registered event monitors (integer)."""

ATTR_MONITOR_SUCCESS = "repomigrate.monitor.success"
"""Whether a monitor handled the event without error (boolean)."""

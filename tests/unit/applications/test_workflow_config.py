"""
Unit tests for WorkflowConfig.
"""

import pytest
from django.test import override_settings

from applications.config import WorkflowConfig


class TestWorkflowConfig:
    """Tests for WorkflowConfig."""

    def test_defaults(self):
        """Test default values."""
        config = WorkflowConfig.from_mapping(None)

        assert config.ttl_months == 6
        assert config.max_retry_count == 3
        assert config.requeue_delay_seconds == 300
        assert config.batch_retry_limit == 10
        assert config.batch_retry_interval_seconds == 0.1
        assert config.cancellation_window_seconds == 300
        assert config.approval_notification_delay_seconds == 300

    def test_string_values_are_parsed(self):
        """Test values coming from environment variables."""
        config = WorkflowConfig.from_mapping(
            {
                "TTL_MONTHS": "12",
                "MAX_RETRY_COUNT": "5",
                "REQUEUE_DELAY_SECONDS": "60",
                "BATCH_RETRY_INTERVAL_SECONDS": "0",
            }
        )

        assert config.ttl_months == 12
        assert config.max_retry_count == 5
        assert config.requeue_delay_seconds == 60
        assert config.batch_retry_interval_seconds == 0.0

    @pytest.mark.parametrize(
        "key,value,attribute,default",
        [
            ("TTL_MONTHS", "forever", "ttl_months", 6),
            ("TTL_MONTHS", 0, "ttl_months", 6),
            ("MAX_RETRY_COUNT", -1, "max_retry_count", 3),
            ("REQUEUE_DELAY_SECONDS", "soon", "requeue_delay_seconds", 300),
            ("BATCH_RETRY_INTERVAL_SECONDS", -0.5, "batch_retry_interval_seconds", 0.1),
            ("CANCELLATION_WINDOW_SECONDS", True, "cancellation_window_seconds", 300),
        ],
    )
    def test_invalid_values_fall_back(self, key, value, attribute, default):
        """Test that invalid values use the default instead of raising."""
        config = WorkflowConfig.from_mapping({key: value})
        assert getattr(config, attribute) == default

    def test_from_settings(self):
        """Test reading LICENSE_WORKFLOW from Django settings."""
        with override_settings(LICENSE_WORKFLOW={"MAX_RETRY_COUNT": 4, "TTL_MONTHS": 3}):
            config = WorkflowConfig.from_settings()

        assert config.max_retry_count == 4
        assert config.ttl_months == 3

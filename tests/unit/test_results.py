"""
Unit tests for the Result types module.
"""

from web3fund_toolkit.shared.results import (
    ErrorSeverity,
    ProcessingError,
    Result,
)


class TestProcessingError:
    """Tests for ProcessingError dataclass."""

    def test_create_error(self):
        error = ProcessingError(
            source="campaign_reader",
            message="Campaign 7 could not be loaded",
            severity=ErrorSeverity.WARNING,
        )
        assert error.source == "campaign_reader"
        assert error.context == {}
        assert error.exception is None

    def test_to_dict(self):
        """Test converting error to dictionary."""
        error = ProcessingError(
            source="campaign_reader",
            message="Campaign 7 could not be loaded",
            severity=ErrorSeverity.WARNING,
            context={"campaign_id": 7},
            exception=ValueError("hidden"),
        )
        d = error.to_dict()
        assert d == {
            "source": "campaign_reader",
            "message": "Campaign 7 could not be loaded",
            "severity": "warning",
            "context": {"campaign_id": 7},
        }


class TestResult:
    """Tests for Result[T] generic class."""

    def test_ok_result(self):
        result = Result.ok([1, 2])
        assert result.success is True
        assert result.data == [1, 2]
        assert result.errors == []
        assert result.has_warnings() is False
        assert result.get_error_messages() == []

    def test_add_warning_keeps_success(self):
        result = Result.ok([])
        result.add_warning(
            source="campaign_reader",
            message="Campaign 3 could not be loaded",
            context={"campaign_id": 3},
        )
        assert result.success is True
        assert result.has_warnings() is True
        assert result.errors[0].severity == ErrorSeverity.WARNING

    def test_error_messages_keep_insertion_order(self):
        result = Result.ok([])
        result.add_warning("campaign_reader", "Campaign 9 could not be loaded")
        result.add_warning("campaign_reader", "Campaign 2 could not be loaded")

        assert result.get_error_messages() == [
            "Campaign 9 could not be loaded",
            "Campaign 2 could not be loaded",
        ]

"""Tests for exceptions.py: exception hierarchy and retry helpers."""

from animatch.shared.exceptions import (
    AdapterError,
    AdapterTimeoutError,
    AniMatchError,
    ConfigurationError,
    DataError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InvalidParameterError,
    NotFoundError,
    ParseError,
    RateLimitError,
    UnknownSourceError,
    ValidationError,
    get_retry_delay,
    is_retryable_error,
)


class TestAniMatchError:
    def test_basic_creation(self):
        e = AniMatchError("test error")
        assert str(e) == "test error"
        assert e.severity == ErrorSeverity.ERROR
        assert e.category == ErrorCategory.ADAPTER
        assert e.retryable is False

    def test_to_dict(self):
        ctx = ErrorContext(operation="search", suggestion="try again", retry_after=5.0)
        d = AniMatchError("fail", context=ctx, retryable=True).to_dict()
        assert d["error"] == "fail"
        assert d["operation"] == "search"
        assert d["suggestion"] == "try again"
        assert d["retry_after_seconds"] == 5.0
        assert d["retryable"] is True

    def test_to_dict_minimal(self):
        d = AniMatchError("fail").to_dict()
        assert "operation" not in d
        assert "suggestion" not in d
        assert d["severity"] == "error"


class TestAdapterErrors:
    def test_message_tagged_with_source(self):
        e = AdapterError("boom", source="jikan")
        assert str(e) == "[jikan] boom"
        assert e.source == "jikan"
        assert e.retryable is True

    def test_rate_limit(self):
        e = RateLimitError(source="anilist", retry_after=3.0)
        assert isinstance(e, AdapterError)
        assert e.context.retry_after == 3.0
        assert e.severity == ErrorSeverity.TRANSIENT
        assert e.context.suggestion

    def test_timeout(self):
        e = AdapterTimeoutError(10.0, source="kitsu")
        assert isinstance(e, AdapterError)
        assert "10.0s" in str(e)
        assert e.timeout == 10.0


class TestValidationErrors:
    def test_invalid_parameter(self):
        e = InvalidParameterError("limit", -1, "a positive integer")
        assert isinstance(e, ValidationError)
        assert e.param_name == "limit"
        assert e.context.input_value == -1
        assert "positive integer" in e.context.suggestion
        assert e.category == ErrorCategory.VALIDATION

    def test_unknown_source(self):
        e = UnknownSourceError("crunchyroll", known_sources=("anilist", "jikan"))
        assert e.source_name == "crunchyroll"
        assert "crunchyroll" in str(e)
        assert "anilist, jikan" in e.context.suggestion
        assert not isinstance(e, AdapterError)

    def test_unknown_source_without_known(self):
        assert UnknownSourceError("x").context.suggestion is None


class TestDataErrors:
    def test_not_found(self):
        e = NotFoundError("Anime", "anilist-1")
        assert isinstance(e, DataError)
        assert str(e) == "Anime not found: anilist-1"

    def test_not_found_without_identifier(self):
        assert str(NotFoundError("Anime")) == "Anime not found"

    def test_parse_error(self):
        assert str(ParseError("bad json", source="kitsu")) == "Parse error (kitsu): bad json"
        assert str(ParseError("bad json")) == "Parse error: bad json"

    def test_configuration_error(self):
        e = ConfigurationError("bad config")
        assert e.severity == ErrorSeverity.CRITICAL
        assert e.category == ErrorCategory.CONFIGURATION


class TestRetryHelpers:
    def test_retryable_animatch_error(self):
        assert is_retryable_error(RateLimitError(source="anilist")) is True
        assert is_retryable_error(UnknownSourceError("x")) is False

    def test_retryable_by_message(self):
        assert is_retryable_error(Exception("Service Unavailable")) is True
        assert is_retryable_error(Exception("connection reset by peer")) is True
        assert is_retryable_error(Exception("bad input")) is False

    def test_retry_delay_grows(self):
        first = get_retry_delay(Exception("x"), 0)
        third = get_retry_delay(Exception("x"), 2)
        assert 1.0 <= first <= 1.1
        assert 4.0 <= third <= 4.4

    def test_retry_delay_uses_retry_after(self):
        delay = get_retry_delay(RateLimitError(source="anilist", retry_after=5.0), 0)
        assert 5.0 <= delay <= 5.5

    def test_retry_delay_capped(self):
        assert get_retry_delay(Exception("x"), 10) == 30.0

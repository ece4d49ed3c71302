from structlog.testing import capture_logs

from aop_logging.config import DEFAULT_SLOW_THRESHOLD_MS, InterceptorSettings


class TestInterceptorSettings:
    """Tests for environment-sourced settings."""

    def test_defaults(self):
        """Should use defaults for an empty environment."""
        settings = InterceptorSettings.from_env({})

        assert settings.slow_threshold_ms == DEFAULT_SLOW_THRESHOLD_MS == 1000
        assert settings.log_headers is False
        assert settings.log_request_body is False
        assert settings.service_advice_enabled is False
        assert settings.log_request_details is False
        assert settings.user_id_header == "X-User-Id"

    def test_values_from_environment(self):
        """Should read every setting from the environment."""
        settings = InterceptorSettings.from_env({
            "LOGGING_PERFORMANCE_SLOW_THRESHOLD_MS": "250",
            "LOGGING_REQUEST_LOG_HEADERS": "true",
            "LOGGING_REQUEST_LOG_BODY": "Yes",
            "LOGGING_SERVICE_ADVICE_ENABLED": "1",
            "LOGGING_USER_ID_HEADER": "X-Account-Id",
            "LOGGING_SESSION_COOKIE": "sid",
        })

        assert settings.slow_threshold_ms == 250
        assert settings.log_headers is True
        assert settings.log_request_body is True
        assert settings.service_advice_enabled is True
        assert settings.log_request_details is True
        assert settings.user_id_header == "X-Account-Id"
        assert settings.session_cookie == "sid"

    def test_invalid_integer_falls_back(self):
        """Should warn and use the default for a non-numeric threshold."""
        with capture_logs() as logs:
            settings = InterceptorSettings.from_env({"LOGGING_PERFORMANCE_SLOW_THRESHOLD_MS": "fast"})

        assert settings.slow_threshold_ms == 1000
        assert logs[0]["event"] == "invalid_integer_setting"
        assert logs[0]["log_level"] == "warning"

    def test_negative_integer_falls_back(self):
        """Should warn and use the default for a negative threshold."""
        with capture_logs() as logs:
            settings = InterceptorSettings.from_env({"LOGGING_PERFORMANCE_SLOW_THRESHOLD_MS": "-5"})

        assert settings.slow_threshold_ms == 1000
        assert logs[0]["event"] == "negative_integer_setting"

    def test_invalid_boolean_falls_back(self):
        """Should warn and use the default for an unknown boolean."""
        with capture_logs() as logs:
            settings = InterceptorSettings.from_env({"LOGGING_REQUEST_LOG_HEADERS": "maybe"})

        assert settings.log_headers is False
        assert logs[0]["variable"] == "LOGGING_REQUEST_LOG_HEADERS"

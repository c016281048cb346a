"""
Unit Tests for settings helpers
"""
import pytest
from pydantic import ValidationError

from patchstream.core.config import Settings, normalize_deepseek_base_url, parse_bool


class TestParseBool:
    """Test loose boolean parsing"""

    @pytest.mark.parametrize("value", [True, "1", "true", " YES ", "on"])
    def test_truthy(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", [False, "0", "false", "No", "OFF"])
    def test_falsy(self, value):
        assert parse_bool(value, fallback=True) is False

    @pytest.mark.parametrize("value", [None, "", "maybe", 2])
    def test_fallback(self, value):
        assert parse_bool(value) is False
        assert parse_bool(value, fallback=True) is True


class TestBaseUrl:
    """Test DeepSeek base URL normalization"""

    @pytest.mark.parametrize("raw,expected", [
        (None, "https://api.deepseek.com/v1"),
        ("", "https://api.deepseek.com/v1"),
        ("https://api.deepseek.com", "https://api.deepseek.com/v1"),
        ("https://api.deepseek.com/v1/", "https://api.deepseek.com/v1"),
        ("http://localhost:8080///", "http://localhost:8080/v1"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_deepseek_base_url(raw) == expected


class TestSettings:
    """Test Settings validation"""

    def test_base_url_is_normalized(self):
        assert Settings(DEEPSEEK_BASE_URL="https://proxy.example/").DEEPSEEK_BASE_URL == "https://proxy.example/v1"

    def test_chunk_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(FILE_OP_CHUNK_SIZE=0)

    def test_key_detection(self):
        assert Settings(DEEPSEEK_API_KEY="  ").has_deepseek_key is False
        assert Settings(DEEPSEEK_API_KEY="sk-1").has_deepseek_key is True

    def test_default_model(self):
        config = Settings(DEEPSEEK_MODEL="fast", DEEPSEEK_THINKING_MODEL="slow")
        assert config.default_model(False) == "fast"
        assert config.default_model(True) == "slow"

    def test_timeouts(self):
        config = Settings(DEEPSEEK_CONNECT_TIMEOUT=5, DEEPSEEK_REQUEST_TIMEOUT=60)
        assert config.get_timeouts() == {"connect": 5, "read": 60}

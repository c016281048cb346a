"""
PatchStream - Test Configuration and Fixtures
"""
import os
from typing import Any, Callable, Dict, List

import pytest

# Set testing environment before settings are loaded
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DEEPSEEK_API_KEY'] = 'test-api-key'
os.environ.pop('LOG_FILE', None)


ROLE_OVERRIDE_PREFIX = 'DEEPSEEK_MODEL_'


@pytest.fixture(autouse=True)
def clear_role_model_overrides(monkeypatch):
    """Per-role model overrides from the host must not leak into tests"""
    for key in list(os.environ):
        if key.startswith(ROLE_OVERRIDE_PREFIX):
            monkeypatch.delenv(key, raising=False)


def chat_response(content: str) -> Dict[str, Any]:
    """OpenAI-compatible chat completion response"""
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def make_chat_response() -> Callable[[str], Dict[str, Any]]:
    return chat_response


@pytest.fixture
def status_log() -> List[tuple]:
    return []


@pytest.fixture
def record_status(status_log):
    def _record(phase: str, label: str) -> None:
        status_log.append((phase, label))
    return _record

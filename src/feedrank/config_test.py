import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from .config import BACKEND_LIVE, BACKEND_MEMORY, get_settings


def test_defaults():
    with patch.dict(os.environ, {}, clear=True):
        settings = get_settings()
    assert settings.api_key is None
    assert settings.backend == BACKEND_LIVE
    assert settings.profile_ttl == 3600
    assert settings.embedding_ttl == 86400
    assert settings.content_analyzer_url is None


def test_reads_environment():
    env = {
        "API_KEY": "k",
        "FEEDRANK_BACKEND": "memory",
        "REDIS_URL": "redis://cache:6379/1",
        "FEEDRANK_PROFILE_TTL": "120",
        "FEEDRANK_SIMILARITY": "stub",
    }
    with patch.dict(os.environ, env, clear=True):
        settings = get_settings()
    assert settings.api_key == "k"
    assert settings.backend == BACKEND_MEMORY
    assert settings.redis_url == "redis://cache:6379/1"
    assert settings.profile_ttl == 120
    assert settings.similarity == "stub"


def test_rejects_non_positive_ttl():
    with patch.dict(os.environ, {"FEEDRANK_PROFILE_TTL": "0"}, clear=True):
        with pytest.raises(ValidationError):
            get_settings()

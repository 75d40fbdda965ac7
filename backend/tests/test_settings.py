"""
Tests for production configuration checks.
"""

import pytest

from rest_api.core.lifespan import check_configuration
from shared.config.settings import DEV_JWT_SECRET, Settings

STRONG_SECRET = "x" * 48


def production(**overrides) -> Settings:
    values = dict(
        environment="production",
        debug=False,
        jwt_secret=STRONG_SECRET,
        kv_backend="redis",
        allowed_origins="https://hub.campus.edu",
    )
    values.update(overrides)
    return Settings(**values)


def test_clean_production_configuration():
    assert production().validate_production_secrets() == []


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"jwt_secret": DEV_JWT_SECRET}, "JWT_SECRET"),
        ({"jwt_secret": "short"}, "JWT_SECRET"),
        ({"debug": True}, "DEBUG"),
        ({"kv_backend": "memory"}, "KV_BACKEND"),
        ({"allowed_origins": ""}, "ALLOWED_ORIGINS"),
    ],
)
def test_each_problem_reported(overrides, fragment):
    problems = production(**overrides).validate_production_secrets()
    assert len(problems) == 1
    assert fragment in problems[0]


def test_development_is_not_checked():
    settings = Settings(environment="development", jwt_secret=DEV_JWT_SECRET, kv_backend="memory")
    assert settings.validate_production_secrets() == []
    assert settings.uses_dev_secret


def test_startup_refused_in_production():
    with pytest.raises(RuntimeError, match="DEBUG"):
        check_configuration(production(debug=True))


def test_startup_allowed_in_development():
    check_configuration(Settings(environment="development", jwt_secret=DEV_JWT_SECRET))

"""
Tests for request and response schemas.
"""

import inspect
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from pydantic import BaseModel

from shared.utils import schemas
from shared.utils.schemas import LoginLogOutput, UserInfo


def schema_classes():
    return [
        cls
        for _, cls in inspect.getmembers(schemas, inspect.isclass)
        if issubclass(cls, BaseModel) and cls.__module__ == schemas.__name__
    ]


@pytest.mark.parametrize("model", schema_classes(), ids=lambda cls: cls.__name__)
def test_no_class_based_config(model):
    assert "Config" not in vars(model)


def test_user_info_reads_orm_attributes():
    row = SimpleNamespace(
        id=1,
        username="alice",
        email="alice@campus.edu",
        real_name="Alice",
        major="Mathematics",
        class_name="MA-2",
        role="student",
        status="active",
        phone=None,
        avatar=None,
        email_verified=True,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        last_login_at=None,
    )
    info = UserInfo.model_validate(row)
    assert info.username == "alice"
    assert info.model_dump(by_alias=True)["class"] == "MA-2"


def test_login_log_reads_orm_attributes():
    row = SimpleNamespace(
        id=7,
        user_id=None,
        ip_address="10.0.0.1",
        user_agent=None,
        success=False,
        method="password",
        reason="Invalid username or password",
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    assert LoginLogOutput.model_validate(row).ip_address == "10.0.0.1"

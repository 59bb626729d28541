"""Pytest configuration and shared fixtures."""

import os
import pytest

from tablesync.audit import AuditRecorder, MemoryAuditSink
from tablesync.config import ProjectSettings
from tablesync.core import DataTable
from tablesync.models import FieldSpec, TableSchema

_ENV_VARS = (
    "TABLESYNC_PROJECT_DIR",
    "TABLESYNC_AUDIT_ENABLED",
    "TABLESYNC_PAGE_SIZE",
    "TABLESYNC_AUDIT_DB",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep tablesync environment overrides out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def settings():
    """Default project settings with auditing on."""
    return ProjectSettings()


@pytest.fixture
def sink():
    """In-memory audit sink."""
    return MemoryAuditSink()


@pytest.fixture
def recorder(sink, settings):
    """Audit recorder writing to the memory sink."""
    return AuditRecorder(sink, settings)


@pytest.fixture
def users_schema():
    """Schema exercising every redaction rule."""
    return TableSchema(
        name="users",
        fields=[
            FieldSpec(name="name", optional=False),
            FieldSpec(name="age", kind="int"),
            FieldSpec(name="active", kind="boolean"),
            FieldSpec(name="secret", kind="password"),
            FieldSpec(name="token", redact=True),
        ],
        page_size=2,
        movable_rows=True,
    )


def _make_table(n_rows=0, page_size=2, **schema_kwargs):
    schema = TableSchema(
        name=schema_kwargs.pop("name", "items"),
        fields=schema_kwargs.pop("fields", [FieldSpec(name="name")]),
        page_size=page_size,
        **schema_kwargs,
    )
    table = DataTable(schema)
    for i in range(n_rows):
        table.store.create({"name": f"row{i}"})
    return table


@pytest.fixture
def make_table():
    """Factory for tables with a ``name`` field holding row0..rowN-1."""
    return _make_table


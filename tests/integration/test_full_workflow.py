"""Integration tests for full tablesync workflows."""

import shutil
import tempfile
import threading
from pathlib import Path

import pytest

from tablesync.audit import AuditRecorder, SqliteAuditSink
from tablesync.config import Config
from tablesync.core import CustomAction, DataTable, ViewIndex
from tablesync.core.pagination import page_count
from tablesync.managers import TableRegistry
from tablesync.models import FieldSpec, TableSchema


class TestFullWorkflow:
    """Test complete tablesync workflows."""

    @pytest.fixture
    def temp_project(self):
        """Create a temporary test project."""
        temp_dir = tempfile.mkdtemp()
        project_path = Path(temp_dir)
        Config(project_path).init_project()
        yield project_path
        shutil.rmtree(temp_dir)

    @pytest.fixture
    def registry(self, temp_project):
        """Registry auditing to the project's SQLite log."""
        config = Config(temp_project)
        settings = config.load()
        sink = SqliteAuditSink(config.audit_db_path(settings))
        registry = TableRegistry(AuditRecorder(sink, settings))
        yield registry
        sink.close()

    @pytest.fixture
    def hosts_schema(self):
        return TableSchema(
            name="hosts",
            fields=[
                FieldSpec(name="host", optional=False),
                FieldSpec(name="enabled", kind="boolean"),
                FieldSpec(name="password", kind="text"),
            ],
            page_size=3,
            movable_rows=True,
            printable_row_name="host",
        )

    def test_complete_table_workflow(self, registry, hosts_schema):
        """Add, page, edit, move and delete rows through the dispatcher."""
        dispatcher = registry.register(DataTable(hosts_schema))
        table = registry.get("hosts")

        # Step 1: first row reloads the whole table
        first = dispatcher.execute_action("add", {"host": "alpha", "enabled": "1", "password": "pw"})
        assert first.json_payload.reload is not None

        # Step 2: fill the first page and spill onto a second one
        for name in ("beta", "gamma", "delta", "epsilon"):
            response = dispatcher.execute_action("add", {"host": name, "page": "0"})
            assert response.json_payload.success is True
        ids = table.store.ids()
        assert page_count(len(ViewIndex(table).visible_ids()), table.page_size) == 2

        # Step 3: edit a boolean off and check the audit trail
        dispatcher.execute_action("edit", {"id": ids[0], "host": "alpha"})
        entries = registry.recorder.sink.entries(table="hosts")
        last = entries[-1]
        assert last.event == "set"
        assert (last.old_value, last.value) == ("1", "0")
        assert all(e.value != "pw" for e in entries)

        # Step 4: move the last row to the top
        dispatcher.execute_action("setPosition", {"id": ids[4], "nextId": ids[0]})
        assert table.store.ids()[0] == ids[4]

        # Step 5: delete on the first page pulls a row up from the second
        payload = dispatcher.execute_action("del", {"id": ids[1], "page": "0"}).json_payload
        assert payload.removed == [ids[1]]
        assert [f.row["id"] for f in payload.added] == [table.store.ids()[2]]

        # Step 6: every mutation left an entry in the SQLite log
        events = [e.event for e in registry.recorder.sink.entries(table="hosts")]
        assert events.count("del") == 1
        assert events.count("move") == 1

    def test_failed_action_leaves_no_trace(self, registry, hosts_schema):
        """A failing custom action rolls back rows and audit entries."""
        dispatcher = registry.register(DataTable(hosts_schema))
        table = registry.get("hosts")
        dispatcher.execute_action("add", {"host": "alpha"})
        before = len(registry.recorder.sink.entries())

        def purge(row_id, params):
            for existing in table.store.ids():
                table.store.delete(existing)
            raise RuntimeError("purge interrupted")

        table.register_action(CustomAction("purge", purge))
        with pytest.raises(RuntimeError):
            dispatcher.execute_action("purge", {})

        assert table.store.size() == 1
        assert len(registry.recorder.sink.entries()) == before

    def test_concurrent_adds(self, registry, hosts_schema):
        """Concurrent mutations on one table are serialized."""
        dispatcher = registry.register(DataTable(hosts_schema))
        errors = []

        def worker(n):
            for i in range(10):
                payload = dispatcher.execute_action("add", {"host": f"h{n}-{i}"}).json_payload
                if not payload.success:
                    errors.append(payload.message)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        table = registry.get("hosts")
        assert errors == []
        assert table.store.size() == 40
        assert len(set(table.store.ids())) == 40
        assert len(registry.recorder.sink.entries(table="hosts")) == 80

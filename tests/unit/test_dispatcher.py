"""Tests for the action dispatcher."""

from unittest.mock import MagicMock

import pytest

from tablesync.core import CustomAction, DataTable
from tablesync.errors import InvalidInput, NotFound, UnsupportedAction
from tablesync.managers import Dispatcher, parse_params
from tablesync.models import ActionName, FieldSpec, TableSchema


@pytest.fixture
def table(users_schema):
    return DataTable(users_schema)


@pytest.fixture
def dispatcher(table, recorder):
    return Dispatcher(table, recorder)


def add_rows(dispatcher, *names):
    return [dispatcher.engine.add({"name": n})[0] for n in names]


class TestParseParams:
    """Test request parameter parsing."""

    def test_aliases_and_types(self, table):
        params, fields = parse_params(
            table,
            {"id": "r1", "page": "2", "pageSize": "5", "force": "1", "prevId": "a", "name": "bob"},
        )
        assert params.id == "r1"
        assert params.page == 2
        assert params.page_size == 5
        assert params.force is True
        assert params.prev_id == "a"
        assert fields == {"name": "bob"}

    def test_absent_values(self, table):
        params, fields = parse_params(table, {"page": None, "filter": "", "active": None})
        assert params.page == 0
        assert params.filter is None
        assert fields == {"active": None}

    @pytest.mark.parametrize("raw", [{"page": "-1"}, {"page": "x"}, {"pageSize": "0"}])
    def test_invalid(self, table, raw):
        with pytest.raises(InvalidInput):
            parse_params(table, raw)

    def test_unsafe_characters(self, table):
        with pytest.raises(InvalidInput) as exc:
            parse_params(table, {"name": "<b>bob</b>"})
        assert exc.value.data == "name"

    def test_unsafe_allowed(self):
        table = DataTable(
            TableSchema(name="notes", fields=[FieldSpec(name="body", allows_unsafe_input=True)])
        )
        _, fields = parse_params(table, {"body": "<b>hi</b>"})
        assert fields == {"body": "<b>hi</b>"}


class TestResolution:
    """Test how action names resolve to handlers."""

    def test_every_builtin_has_a_handler(self, dispatcher):
        for action in ActionName:
            assert dispatcher.resolve(action.value) is not None

    def test_disabled_builtin(self, recorder):
        schema = TableSchema(name="ro", fields=[FieldSpec(name="name")], actions=["view", "refresh"])
        dispatcher = Dispatcher(DataTable(schema), recorder)
        with pytest.raises(UnsupportedAction):
            dispatcher.execute_action("del", {"id": "x"})

    def test_unknown_action(self, dispatcher):
        with pytest.raises(UnsupportedAction):
            dispatcher.dispatch("explode", {})

    def test_unknown_schema_action(self):
        with pytest.raises(ValueError):
            TableSchema(name="t", actions=["explode"])

    def test_custom_action_name_collision(self, table):
        with pytest.raises(InvalidInput):
            table.register_action(CustomAction("add", MagicMock()))
        table.register_action(CustomAction("archive", MagicMock()))
        with pytest.raises(InvalidInput):
            table.register_action(CustomAction("archive", MagicMock()))


class TestStructuredActions:
    """Test actions answered with a structured payload."""

    def test_add_first_row_reloads(self, dispatcher):
        response = dispatcher.execute_action("add", {"name": "ann"})

        assert response.is_structured
        payload = response.json_payload
        assert payload.success is True
        assert payload.reload["rows"][0]["values"]["name"] == "ann"
        assert payload.highlight_row_after_reload == payload.reload["rows"][0]["id"]

    def test_add_splices_row(self, dispatcher):
        (first,) = add_rows(dispatcher, "ann")
        payload = dispatcher.execute_action("add", {"name": "bob"}).json_payload

        assert payload.reload is None
        assert len(payload.added) == 1
        assert payload.added[0].position == first
        assert payload.added[0].row["values"]["name"] == "bob"

    def test_add_reports_pagination(self, dispatcher):
        add_rows(dispatcher, "a", "b")
        payload = dispatcher.execute_action("add", {"name": "c", "page": "0"}).json_payload

        # The new row lands on page 1 of a two-row page size
        assert payload.reload["page"] == 1
        assert payload.reload["page_count"] == 2

    def test_delete(self, dispatcher):
        ids = add_rows(dispatcher, "a", "b", "c", "d", "e", "f")
        payload = dispatcher.execute_action("del", {"id": ids[1], "page": "0"}).json_payload

        assert payload.success is True
        assert payload.removed == [ids[1]]
        assert [f.row["id"] for f in payload.added] == [ids[2]]
        assert payload.added[0].position == "append"

    def test_delete_only_row_reloads_and_reports_removed(self, dispatcher):
        (row_id,) = add_rows(dispatcher, "a")
        payload = dispatcher.execute_action("del", {"id": row_id}).json_payload

        assert payload.success is True
        assert payload.reload["rows"] == []
        assert payload.removed == [row_id]

    def test_delete_missing_row_fails_softly(self, dispatcher):
        response = dispatcher.execute_action("del", {"id": "nope"})
        payload = response.json_payload

        assert payload.success is False
        assert payload.error == "not_found"
        assert "nope" in payload.message

    def test_delete_in_use(self, users_schema, recorder):
        dependents = MagicMock()
        dependents.has_dependents.return_value = True
        dispatcher = Dispatcher(DataTable(users_schema, dependents=dependents), recorder)
        (row_id,) = add_rows(dispatcher, "a")

        payload = dispatcher.execute_action("del", {"id": row_id}).json_payload
        assert payload.error == "in_use"

        payload = dispatcher.execute_action("del", {"id": row_id, "force": "1"}).json_payload
        assert payload.success is True

    def test_invalid_page_fails_softly(self, dispatcher):
        payload = dispatcher.execute_action("add", {"name": "a", "page": "x"}).json_payload
        assert payload.success is False
        assert payload.error == "invalid_input"

    def test_edit(self, dispatcher, sink):
        (row_id,) = add_rows(dispatcher, "ann")
        sink.clear()
        payload = dispatcher.execute_action("edit", {"id": row_id, "name": "anna"}).json_payload

        assert payload.changed[row_id]["values"]["name"] == "anna"
        assert [e.composite_id for e in sink.entries] == [f"{row_id}/name"]

    def test_edit_in_place(self, dispatcher):
        (row_id,) = add_rows(dispatcher, "ann")
        payload = dispatcher.execute_action(
            "edit", {"id": row_id, "editfield": "secret", "secret": "pw"}
        ).json_payload

        assert payload.changed is None
        assert payload.edited_value == "****"

    def test_edit_boolean(self, dispatcher):
        (row_id,) = add_rows(dispatcher, "ann")
        payload = dispatcher.execute_action(
            "editBoolean", {"id": row_id, "field": "active", "value": "1"}
        ).json_payload
        assert payload.edited_value is True

    def test_set_position(self, dispatcher, table):
        a, b, c = add_rows(dispatcher, "a", "b", "c")
        payload = dispatcher.execute_action("setPosition", {"id": c, "nextId": a}).json_payload

        assert payload.success is True
        assert table.store.ids() == [c, a, b]

    def test_check_all(self, dispatcher):
        add_rows(dispatcher, "a", "b")
        payload = dispatcher.execute_action("checkAllControlValue", {"field": "active"}).json_payload
        assert payload.check_all_value is False

        payload = dispatcher.execute_action("checkAll", {"editid": "active", "active": "1"}).json_payload
        assert payload.check_all_value is True
        payload = dispatcher.execute_action("checkAllControlValue", {"field": "active"}).json_payload
        assert payload.check_all_value is True

    def test_confirmation_dialog(self, dispatcher, table):
        table.register_action(
            CustomAction(
                "archive",
                MagicMock(),
                confirmation=lambda params: {"message": "Archive it?", "title": "Archive"},
            )
        )
        payload = dispatcher.execute_action(
            "confirmationDialog", {"actionToConfirm": "archive"}
        ).json_payload
        assert payload.dialog.want_dialog is True
        assert payload.dialog.message == "Archive it?"
        assert payload.dialog.title == "Archive"

        payload = dispatcher.execute_action(
            "confirmationDialog", {"actionToConfirm": "other"}
        ).json_payload
        assert payload.dialog.want_dialog is False

    def test_message_cleared_after_packaging(self, dispatcher, table):
        table.set_message("Saved", "note")
        payload = dispatcher.execute_action("add", {"name": "a"}).json_payload

        assert payload.message == "Saved"
        assert payload.message_class == "note"
        assert table.pop_message() == ""

    def test_message_cleared_after_failure(self, dispatcher, table):
        table.set_message("stale")
        dispatcher.execute_action("del", {"id": "nope"})
        assert table.pop_message() == ""

    def test_page_size_param(self, dispatcher, table):
        dispatcher.execute_action("add", {"name": "a", "pageSize": "7"})
        assert table.page_size == 7

    def test_failed_action_keeps_page_size(self, dispatcher, table):
        add_rows(dispatcher, "a")
        payload = dispatcher.execute_action("del", {"id": "nope", "pageSize": "3"}).json_payload

        assert payload.success is False
        assert table.page_size == 2

    def test_page_size_param_shapes_delta(self, dispatcher, table):
        ids = add_rows(dispatcher, "a", "b", "c", "d", "e", "f")
        payload = dispatcher.execute_action(
            "del", {"id": ids[0], "page": "0", "pageSize": "3"}
        ).json_payload

        # Row pulled up into a three-row page
        assert [f.row["id"] for f in payload.added] == [ids[3]]
        assert table.page_size == 3


class TestFullPageActions:
    """Test actions answered with a rendered page."""

    def test_refresh(self, dispatcher):
        add_rows(dispatcher, "a", "b", "c")
        response = dispatcher.execute_action("refresh", {"page": "1"})

        assert not response.is_structured
        assert response.page["page"] == 1
        assert [r["values"]["name"] for r in response.page["rows"]] == ["c"]
        assert response.page["page_numbers_text"] == "Page 2 of 2"

    def test_view_with_filter(self, dispatcher):
        add_rows(dispatcher, "alpha", "beta", "alps")
        page = dispatcher.execute_action("view", {"filter": "alp"}).page
        assert [r["values"]["name"] for r in page["rows"]] == ["alpha", "alps"]
        assert page["rows"][0]["movable"] is False

    def test_refresh_with_page_size(self, dispatcher, table):
        add_rows(dispatcher, "a", "b", "c")
        page = dispatcher.execute_action("refresh", {"pageSize": "3"}).page

        assert [r["values"]["name"] for r in page["rows"]] == ["a", "b", "c"]
        assert page["page_count"] == 1
        assert table.page_size == 3

    def test_checkbox_unset_all(self, dispatcher, table, sink):
        ids = add_rows(dispatcher, "a", "b", "c")
        dispatcher.execute_action("checkAll", {"editid": "active", "active": "1"})
        sink.clear()

        response = dispatcher.execute_action("checkboxUnsetAll", {"editid": "active"})

        assert not response.is_structured
        assert len(response.page["rows"]) == 2
        assert [table.store.get(i).value("active") for i in ids] == [False, False, False]
        assert len(sink.entries) == 3
        payload = dispatcher.execute_action("checkAllControlValue", {"field": "active"}).json_payload
        assert payload.check_all_value is False

    def test_checkbox_unset_all_needs_field(self, dispatcher):
        with pytest.raises(InvalidInput):
            dispatcher.execute_action("checkboxUnsetAll", {})

    def test_errors_propagate(self, dispatcher):
        with pytest.raises(InvalidInput):
            dispatcher.execute_action("refresh", {"page": "x"})

    def test_clone(self, dispatcher):
        (row_id,) = add_rows(dispatcher, "a")
        page = dispatcher.execute_action("clone", {"id": row_id}).page
        assert page["action"] == "clone"
        assert page["edit_id"] == row_id

        with pytest.raises(NotFound):
            dispatcher.execute_action("clone", {"id": "nope"})

    def test_custom_action(self, dispatcher, table, sink):
        (row_id,) = add_rows(dispatcher, "a")
        seen = {}

        def archive(target, params):
            seen.update(params)
            table.set_message("Archived")
            table.set_redirect("/archive")

        table.register_action(CustomAction("archive", archive))
        response = dispatcher.execute_action("archive", {"id": row_id, "reason": "old"})

        assert response.redirect == "/archive"
        assert response.message == "Archived"
        assert response.page["table"] == "users"
        assert seen["id"] == row_id
        assert seen["reason"] == "old"
        assert sink.entries[-1].event == "action"

    def test_custom_action_failure_propagates(self, dispatcher, table):
        def fail(target, params):
            raise NotFound("gone")

        table.register_action(CustomAction("fail", fail))
        with pytest.raises(NotFound):
            dispatcher.execute_action("fail", {})


class TestDispatch:
    """Test the delta-level entry point."""

    def test_returns_delta(self, dispatcher):
        (first,) = add_rows(dispatcher, "a")
        delta = dispatcher.dispatch("add", {"name": "b"})
        assert delta.added[0].position == first

    def test_failure_keeps_view_settings(self, dispatcher, table):
        with pytest.raises(NotFound):
            dispatcher.dispatch("del", {"id": "nope", "pageSize": "5", "directory": "/tmp/x"})
        assert table.page_size == 2
        assert table.directory != "/tmp/x"

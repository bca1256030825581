"""Tests for feed message decoding (schemas/events.py)"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tonstat.exceptions import MalformedMessageError
from tonstat.schemas.events import (
    ConnectedEvent, DeathEvent, FlagEvent, GenericEvent, LocationEvent,
    PageCountEvent, PlayerJoinEvent, RoundTypeEvent, TerrorsEvent, TrackerEvent,
    parse_event, parse_message,
)


class TestParseMessage:
    """Tests for raw frame decoding."""

    def test_valid_object(self):
        """Test a JSON object decodes to a dict."""
        data = parse_message('{"Type": "ALIVE", "Value": true}')
        assert data == {"Type": "ALIVE", "Value": True}

    def test_invalid_json_raises(self):
        """Test garbage text raises MalformedMessageError."""
        with pytest.raises(MalformedMessageError):
            parse_message("{not json")

    def test_non_object_raises(self):
        """Test a JSON array is rejected."""
        with pytest.raises(MalformedMessageError) as exc_info:
            parse_message("[1, 2, 3]")
        assert "not a JSON object" in exc_info.value.reason

    def test_raw_text_is_truncated(self):
        """Test the offending text kept on the error is bounded."""
        with pytest.raises(MalformedMessageError) as exc_info:
            parse_message("x" * 1000)
        assert len(exc_info.value.raw) == 200


class TestParseEvent:
    """Tests for typed event dispatch."""

    def test_type_is_case_insensitive(self):
        """Test lower-case Type still dispatches."""
        event = parse_event({"Type": "round_type", "Command": 1, "Name": "Classic"})
        assert isinstance(event, RoundTypeEvent)
        assert event.type == "ROUND_TYPE"
        assert event.is_start
        assert event.label == "Classic"

    def test_upper_case_type_key(self):
        """Test the TYPE key is accepted when Type is absent."""
        event = parse_event({"TYPE": "DEATH", "Name": "Bob"})
        assert isinstance(event, DeathEvent)
        assert event.name == "Bob"

    def test_unknown_type_is_generic(self):
        """Test unknown kinds keep their type name."""
        event = parse_event({"Type": "SOMETHING_NEW", "Value": 3})
        assert isinstance(event, GenericEvent)
        assert event.type == "SOMETHING_NEW"

    def test_missing_type(self):
        """Test a message without Type is generic with an empty type."""
        event = parse_event({"Value": 1})
        assert isinstance(event, GenericEvent)
        assert event.type == ""

    def test_connected_args_filtered(self):
        """Test non-object entries in Args are dropped."""
        event = parse_event({
            "Type": "CONNECTED", "DisplayName": "Me", "UserID": "usr_1",
            "Args": [{"Type": "ALIVE", "Value": True}, "junk", 5],
        })
        assert isinstance(event, ConnectedEvent)
        assert event.display_name == "Me"
        assert event.user_id == "usr_1"
        assert len(event.args) == 1

    def test_connected_args_not_a_list(self):
        """Test a non-list Args becomes empty."""
        event = parse_event({"Type": "CONNECTED", "Args": "oops"})
        assert event.args == []


class TestFieldCoercion:
    """Tests for lenient field handling."""

    def test_null_fields_take_defaults(self):
        """Test null values fall back to defaults."""
        event = parse_event({"Type": "LOCATION", "Command": None, "Name": None})
        assert isinstance(event, LocationEvent)
        assert event.command == 0
        assert event.name == "Unknown"

    def test_string_bool(self):
        """Test 'true' strings coerce to True."""
        event = parse_event({"Type": "ALIVE", "Value": "true"})
        assert isinstance(event, FlagEvent)
        assert event.value is True

    def test_numeric_bool(self):
        """Test 0/1 coerce to booleans."""
        assert parse_event({"Type": "ROUND_ACTIVE", "Value": 1}).value is True
        assert parse_event({"Type": "ROUND_ACTIVE", "Value": 0}).value is False

    def test_unparseable_int_defaults(self):
        """Test a non-numeric page count becomes 0."""
        event = parse_event({"Type": "PAGE_COUNT", "Value": "many"})
        assert isinstance(event, PageCountEvent)
        assert event.value == 0

    def test_object_in_string_field_defaults(self):
        """Test an object where a string is expected is ignored."""
        event = parse_event({"Type": "PLAYER_JOIN", "Value": {"x": 1}, "ID": "usr_9"})
        assert isinstance(event, PlayerJoinEvent)
        assert event.value == "Unknown"
        assert event.resolved_id == "usr_9"

    def test_join_without_id_uses_name(self):
        """Test the name stands in for a missing player id."""
        event = parse_event({"Type": "PLAYER_JOIN", "Value": "Alice"})
        assert event.resolved_id == "Alice"


class TestTerrorsEvent:
    """Tests for TERRORS payloads."""

    def test_names_array(self):
        """Test names come from the Names array."""
        event = parse_event({"Type": "TERRORS", "Command": 0, "Names": ["Big Bird", None, "Haket"]})
        assert isinstance(event, TerrorsEvent)
        assert event.announced_names() == ["Big Bird", "Haket"]
        assert event.is_set_or_reveal

    def test_display_name_fallback(self):
        """Test DisplayName is used when Names is empty."""
        event = parse_event({"Type": "TERRORS", "Command": 1, "DisplayName": "Sawrunner"})
        assert event.announced_names() == ["Sawrunner"]

    def test_reset_command(self):
        """Test command 255 is a reset."""
        event = parse_event({"Type": "TERRORS", "Command": 255})
        assert event.is_reset
        assert not event.is_set_or_reveal


class TestTrackerEvent:
    """Tests for TRACKER snapshots."""

    def test_entries_parsed(self):
        """Test player entries are read with defaults."""
        event = parse_event({
            "Type": "TRACKER",
            "Value": [
                {"Name": "Alice", "UserId": "usr_a", "IsAlive": False},
                {"Name": "Bob"},
                "junk",
            ],
        })
        assert isinstance(event, TrackerEvent)
        assert event.has_roster
        assert len(event.value) == 2
        assert event.value[0].user_id == "usr_a"
        assert event.value[0].is_alive is False
        assert event.value[1].is_alive is True
        assert event.value[1].user_id

    def test_missing_ids_are_unique(self):
        """Test entries without an id get distinct generated ids."""
        event = parse_event({"Type": "TRACKER", "Value": [{"Name": "A"}, {"Name": "B"}]})
        assert event.value[0].user_id != event.value[1].user_id

    def test_no_player_array(self):
        """Test a TRACKER without a list carries no roster."""
        event = parse_event({"Type": "TRACKER", "Value": "status"})
        assert not event.has_roster
        assert event.value == []

"""Tests for the snapshot wire codec."""

import json

import pytest

from safety_sync.core.sync.codec import (
    Snapshot,
    SnapshotDecodeError,
    decode_snapshot,
    encode_snapshot,
    parse_payload,
    snapshot_to_dict,
)
from safety_sync.models import AppConfig, Record, RecordStatus, User


class TestParsePayload:
    """Test raw payload parsing."""

    @pytest.mark.parametrize("payload", [None, "", "   ", b"", "null", {}])
    def test_empty_payloads(self, payload):
        """Test blank bodies, null and {} all mean no data."""
        assert parse_payload(payload) == {}

    def test_bytes_payload(self):
        """Test UTF-8 bytes are decoded."""
        assert parse_payload('{"a": "é"}'.encode("utf-8")) == {"a": "é"}

    @pytest.mark.parametrize("payload", ["not json", "[1, 2]", "42", b"\xff\xfe"])
    def test_malformed_payloads_raise(self, payload):
        """Test non-JSON and non-object payloads are rejected."""
        with pytest.raises(SnapshotDecodeError):
            parse_payload(payload)


class TestDecodeSnapshot:
    """Test decode_snapshot."""

    def test_empty_payload_is_none(self):
        """Test a new workspace decodes to None."""
        assert decode_snapshot("{}") is None
        assert decode_snapshot(json.dumps({"lastUpdated": 5})) is None

    def test_absent_fields_decode_to_none(self):
        """Test missing collections mean no update, not empty."""
        snapshot = decode_snapshot({"records": [], "lastUpdated": 10})

        assert snapshot is not None
        assert snapshot.records == []
        assert snapshot.users is None
        assert snapshot.meetings is None
        assert snapshot.notifications is None
        assert snapshot.config is None
        assert snapshot.last_updated == 10

    def test_full_snapshot(self):
        """Test camelCase wire fields map onto the models."""
        payload = {
            "users": [{"id": "u1", "name": "Eddy", "role": "TECHNIEKER"}],
            "records": [
                {
                    "id": "r1",
                    "timestamp": 100,
                    "userName": "Eddy",
                    "status": "WACHT OP HANDTEKENING",
                    "questions": [{"id": "q0", "questionText": "Helm?"}],
                }
            ],
            "config": {"appName": "Test", "lmraQuestions": ["Helm?"]},
            "lastUpdated": 1700000000000,
        }

        snapshot = decode_snapshot(json.dumps(payload))

        assert snapshot.users[0].name == "Eddy"
        record = snapshot.records[0]
        assert record.user_name == "Eddy"
        assert record.status == RecordStatus.PENDING_SIGNATURE
        assert record.questions[0].question_text == "Helm?"
        assert snapshot.config.app_name == "Test"
        assert snapshot.config.record_questions == ["Helm?"]

    def test_legacy_keys(self):
        """Test payloads written by older clients are understood."""
        payload = {
            "lmras": [{"id": "r1", "timestamp": 1}],
            "kickoffs": [{"id": "m1", "timestamp": 1}],
            "appConfig": {"appName": "Old"},
        }

        snapshot = decode_snapshot(payload)

        assert [r.id for r in snapshot.records] == ["r1"]
        assert [m.id for m in snapshot.meetings] == ["m1"]
        assert snapshot.config.app_name == "Old"

    def test_current_key_wins_over_legacy(self):
        """Test the current key is preferred when both are present."""
        payload = {"records": [{"id": "new"}], "lmras": [{"id": "old"}]}

        snapshot = decode_snapshot(payload)

        assert [r.id for r in snapshot.records] == ["new"]

    def test_invalid_items_are_skipped(self):
        """Test one broken item does not reject the collection."""
        payload = {"records": [{"id": "ok"}, {"title": "no id"}, "garbage"]}

        snapshot = decode_snapshot(payload)

        assert [r.id for r in snapshot.records] == ["ok"]

    def test_non_list_collection_is_absent(self):
        """Test a collection of the wrong type is treated as absent."""
        snapshot = decode_snapshot({"records": {"id": "r1"}, "users": []})

        assert snapshot.records is None
        assert snapshot.users == []

    def test_unknown_fields_survive(self):
        """Test fields written by newer clients are preserved."""
        snapshot = decode_snapshot({"records": [{"id": "r1", "gpsFix": [1, 2]}]})

        wire = snapshot.records[0].to_wire()

        assert wire["gpsFix"] == [1, 2]

    def test_invalid_last_updated(self):
        """Test an unreadable version is treated as 0."""
        snapshot = decode_snapshot({"users": [], "lastUpdated": "soon"})

        assert snapshot.last_updated == 0

    def test_malformed_raises(self):
        """Test a malformed body raises."""
        with pytest.raises(SnapshotDecodeError):
            decode_snapshot("<html>error</html>")


class TestEncodeSnapshot:
    """Test snapshot encoding."""

    def test_absent_collections_are_omitted(self):
        """Test None collections are not written as empty lists."""
        snapshot = Snapshot(records=[Record(id="r1", timestamp=5)], last_updated=7)

        data = snapshot_to_dict(snapshot)

        assert set(data) == {"records", "lastUpdated"}
        assert data["records"][0]["id"] == "r1"
        assert data["lastUpdated"] == 7

    def test_wire_names(self):
        """Test fields are written in camelCase with legacy config names."""
        snapshot = Snapshot(
            users=[User(id="u1", must_change_password=True)],
            config=AppConfig(record_questions=["Q"], meeting_topics=["T"]),
            last_updated=1,
        )

        data = json.loads(encode_snapshot(snapshot))

        assert data["users"][0]["mustChangePassword"] is True
        assert data["config"]["lmraQuestions"] == ["Q"]
        assert data["config"]["kickoffTopics"] == ["T"]

    def test_decode_of_encoded_snapshot(self):
        """Test an encoded snapshot decodes to the same data."""
        snapshot = Snapshot(
            records=[Record(id="r1", timestamp=5, title="Kabel")],
            notifications=[],
            last_updated=9,
        )

        decoded = decode_snapshot(encode_snapshot(snapshot))

        assert decoded.records[0].title == "Kabel"
        assert decoded.notifications == []
        assert decoded.users is None
        assert decoded.last_updated == 9

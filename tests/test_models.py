"""Tests for the dataset models."""

import pytest

from safety_sync.models import (
    AppConfig,
    Answer,
    Attendee,
    Question,
    Record,
    User,
    UserRole,
    default_config,
)


class TestSyncable:
    """Test shared id/timestamp behaviour."""

    @pytest.mark.parametrize("value", [None, "later", True, -1])
    def test_unusable_timestamp_is_zero(self, value):
        """Test bad timestamps are read as the oldest value."""
        assert Record(id="r1", timestamp=value).timestamp == 0

    def test_numeric_string_timestamp(self):
        """Test numeric strings are accepted."""
        record = Record.model_validate({"id": "r1", "timestamp": "1700"})

        assert record.timestamp == 1700

    def test_touched_bumps_timestamp(self):
        """Test touched() always produces a strictly newer copy."""
        future = Record(id="r1", timestamp=10**15, title="old")

        touched = future.touched(title="new")

        assert touched.title == "new"
        assert touched.timestamp == 10**15 + 1
        assert future.title == "old"

    def test_wire_names(self):
        """Test dumps use camelCase and omit unset optionals."""
        wire = User(id="u1", is_external=True).to_wire()

        assert wire["isExternal"] is True
        assert "password" not in wire

    def test_populate_from_wire_names(self):
        """Test camelCase input is accepted."""
        user = User.model_validate({"id": "u1", "mustChangePassword": True})

        assert user.must_change_password is True


class TestRecord:
    """Test Record helpers."""

    def test_flags(self):
        """Test NOK, signature and tombstone flags."""
        record = Record(
            id="r1",
            questions=[Question(id="q0", question_text="?", answer=Answer.NOK)],
            attendees=[Attendee(name="A", is_signed=True), Attendee(name="B")],
        )

        assert record.has_nok
        assert not record.all_signed
        assert not record.is_deleted
        assert record.touched(deleted_at=5).is_deleted


class TestAppConfig:
    """Test AppConfig."""

    def test_screens_for(self):
        """Test permissions are looked up per role."""
        config = AppConfig(permissions={"ADMIN": ["settings"]})

        assert config.screens_for(UserRole.ADMIN) == ["settings"]
        assert config.screens_for(UserRole.TECHNIEKER) == []

    def test_default_config_is_fresh(self):
        """Test each call returns an independent copy."""
        first = default_config()
        first.record_questions.append("extra")

        assert "extra" not in default_config().record_questions

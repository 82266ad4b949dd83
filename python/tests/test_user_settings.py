"""Tests for the per-user settings blob.

Tests cover:
- Reading the host's PHP serialize() blob, keeping keys we don't use
- Writing back in the same form
- Unreadable blobs raise instead of reading as empty
"""

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from restip.errors import ApiError, ApiErrorCode
from restip.services.user_settings import get_user_data, set_user_data
from tests.factories import get_raw_user_data, set_raw_user_data

HOST_BLOB = (
    'a:2:{s:5:"theme";s:4:"dark";s:21:"my_messaging_settings";'
    'a:1:{s:6:"folder";a:1:{s:2:"in";a:1:{i:1;s:4:"work";}}}}'
)


class TestUserSettings:
    """Tests for reading and writing user_data."""

    def test_missing_row_reads_empty(self, db_session: Session, viewer_id: str):
        assert get_user_data(db_session, viewer_id) == {}

    def test_empty_value_reads_empty(self, db_session: Session, viewer_id: str):
        set_raw_user_data(db_session, viewer_id, "")

        assert get_user_data(db_session, viewer_id) == {}

    def test_reads_host_blob(self, db_session: Session, viewer_id: str):
        set_raw_user_data(db_session, viewer_id, HOST_BLOB)

        assert get_user_data(db_session, viewer_id) == {
            "theme": "dark",
            "my_messaging_settings": {"folder": {"in": {1: "work"}}},
        }

    def test_write_then_read(self, db_session: Session, viewer_id: str):
        set_user_data(db_session, viewer_id, {"a": {"b": "c"}, "n": 2})

        assert get_user_data(db_session, viewer_id) == {"a": {"b": "c"}, "n": 2}

    def test_writes_php_serialized_value(self, db_session: Session, viewer_id: str):
        set_user_data(db_session, viewer_id, {"theme": "dark", "folder": {1: "work"}})

        assert get_raw_user_data(db_session, viewer_id) == (
            'a:2:{s:5:"theme";s:4:"dark";s:6:"folder";a:1:{i:1;s:4:"work";}}'
        )

    def test_host_blob_survives_rewrite(self, db_session: Session, viewer_id: str):
        set_raw_user_data(db_session, viewer_id, HOST_BLOB)

        set_user_data(db_session, viewer_id, get_user_data(db_session, viewer_id))

        assert get_raw_user_data(db_session, viewer_id) == HOST_BLOB

    def test_legacy_charset_string_lengths(self, db_session: Session, viewer_id: str):
        set_raw_user_data(db_session, viewer_id, 'a:1:{s:4:"name";s:4:"Jörg";}')

        assert get_user_data(db_session, viewer_id) == {"name": "Jörg"}

    def test_write_replaces_existing_row(self, db_session: Session, viewer_id: str):
        set_user_data(db_session, viewer_id, {"a": 1})
        set_user_data(db_session, viewer_id, {"b": 2})

        count = db_session.execute(
            text("SELECT COUNT(*) FROM user_data WHERE sid = :sid"), {"sid": viewer_id}
        ).scalar()
        assert count == 1
        assert get_user_data(db_session, viewer_id) == {"b": 2}

    @pytest.mark.parametrize("val", ["a:1:{not serialized", '{"a": 1}', 's:3:"abc";'])
    def test_unreadable_value_raises(self, db_session: Session, viewer_id: str, val: str):
        set_raw_user_data(db_session, viewer_id, val)

        with pytest.raises(ApiError) as exc_info:
            get_user_data(db_session, viewer_id)

        assert exc_info.value.code == ApiErrorCode.E_USER_DATA_UNREADABLE
        assert exc_info.value.status_code == 500

"""Tests for the license vault.

Tests cover:
- Issue/read round trip and the at-rest encryption
- content_id / sequence_id validation
- Conflicts on re-issue, not-found paths
- License cache behaviour, including provider names with underscores
"""

import pytest
from sqlalchemy import select

from licensor.db.models import License
from licensor.errors import (
    ApiErrorCode,
    ConflictError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from licensor.services.licenses import MAX_ID, validate_ids


def stored_ciphertext(context, content_id: int, sequence_id: int = 0) -> bytes:
    with context.registry_sessions() as db:
        return db.scalar(
            select(License.license).where(
                License.content_id == content_id, License.sequence_id == sequence_id
            )
        )


class TestCreateLicense:
    def test_round_trip(self, server, plain_provider):
        created = server.licenses.create("plain_provider", 123)

        assert len(created.license) == 16
        int(created.license, 16)
        assert created.content_id == 123
        assert created.sequence_id == 0
        assert server.licenses.get("plain_provider", 123) == created.license

    def test_identifying_fields(self, server, plain_provider):
        raw = server.providers.get_raw("plain_provider")
        created = server.licenses.create("plain_provider", "77", "3")

        assert created.model_dump() == {
            "provider_id": raw.id,
            "content_id": 77,
            "sequence_id": 3,
            "license": created.license,
        }

    def test_stored_value_is_encrypted(self, server, context, plain_provider):
        created = server.licenses.create("plain_provider", 123)
        ciphertext = stored_ciphertext(context, 123)

        assert len(ciphertext) == 16
        assert ciphertext != bytes.fromhex(created.license)
        assert bytes.fromhex(created.license) not in ciphertext

    def test_sequences_are_distinct_licenses(self, server, plain_provider):
        a = server.licenses.create("plain_provider", 123, 0)
        b = server.licenses.create("plain_provider", 123, 1)

        assert server.licenses.get("plain_provider", 123, 0) == a.license
        assert server.licenses.get("plain_provider", 123, 1) == b.license

    def test_oversized_ids_rejected_before_store(self, server, plain_provider):
        with pytest.raises(InvalidArgumentError) as exc_info:
            server.licenses.create("plain_provider", 10**30)
        assert exc_info.value.code == ApiErrorCode.E_CONTENT_ID_INVALID

        with pytest.raises(InvalidArgumentError) as exc_info:
            server.licenses.create("plain_provider", 1, 10**30)
        assert exc_info.value.code == ApiErrorCode.E_SEQUENCE_ID_INVALID

    def test_id_range_edges(self, server, plain_provider):
        zero = server.licenses.create("plain_provider", "0")
        widest = server.licenses.create("plain_provider", MAX_ID, MAX_ID)

        assert server.licenses.get("plain_provider", 0) == zero.license
        assert server.licenses.get("plain_provider", str(MAX_ID), str(MAX_ID)) == widest.license

    def test_reissue_is_conflict(self, server, plain_provider):
        server.licenses.create("plain_provider", 123)
        with pytest.raises(ConflictError) as exc_info:
            server.licenses.create("plain_provider", 123)
        assert exc_info.value.code == ApiErrorCode.E_LICENSE_EXISTS

    def test_unknown_provider(self, server):
        with pytest.raises(NotFoundError):
            server.licenses.create("nobody_here", 123)

    def test_validation_precedes_provider_lookup(self, server):
        with pytest.raises(InvalidArgumentError):
            server.licenses.create("nobody_here", "abc")


class TestGetLicense:
    def test_oversized_content_id(self, server, plain_provider):
        with pytest.raises(InvalidArgumentError):
            server.licenses.get("plain_provider", str(10**30))

    def test_unknown_license(self, server, plain_provider):
        with pytest.raises(NotFoundError) as exc_info:
            server.licenses.get("plain_provider", 999)
        assert exc_info.value.code == ApiErrorCode.E_LICENSE_NOT_FOUND

    def test_unknown_provider(self, server):
        with pytest.raises(NotFoundError):
            server.licenses.get("nobody_here", 123)

    def test_missing_provider_name(self, server):
        with pytest.raises(NotFoundError):
            server.licenses.get(None, 123)

    def test_provider_name_with_underscores(self, server):
        server.providers.create("my_long_provider_name", {})
        created = server.licenses.create("my_long_provider_name", 5, 2)
        assert server.licenses.get("my_long_provider_name", "5", "2") == created.license

    def test_other_provider_cannot_read(self, server, plain_provider):
        server.providers.create("other_provider", {})
        server.licenses.create("plain_provider", 123)
        with pytest.raises(NotFoundError):
            server.licenses.get("other_provider", 123)

    def test_result_is_cached(self, server, context, plain_provider):
        created = server.licenses.create("plain_provider", 123)
        server.licenses.get("plain_provider", 123)

        with context.registry_sessions() as db:
            db.query(License).delete()
            db.commit()

        assert server.licenses.get("plain_provider", 123) == created.license

    def test_cache_expires_after_ttl(self, server, context, clock, plain_provider):
        server.licenses.create("plain_provider", 123)
        server.licenses.get("plain_provider", 123)
        with context.registry_sessions() as db:
            db.query(License).delete()
            db.commit()

        clock.advance(60)

        with pytest.raises(NotFoundError):
            server.licenses.get("plain_provider", 123)

    def test_cache_stores_plaintext_hex(self, server, plain_provider):
        created = server.licenses.create("plain_provider", 123)
        server.licenses.get("plain_provider", 123)
        assert server.licenses.cache.get("plain_provider_123_0", lambda: None) == created.license

    def test_corrupt_ciphertext_is_internal(self, server, context, plain_provider):
        server.licenses.create("plain_provider", 123)
        with context.registry_sessions() as db:
            db.query(License).update({License.license: b"\x00" * 15})
            db.commit()
        with pytest.raises(InternalError):
            server.licenses.get("plain_provider", 123)


class TestValidateIds:
    @pytest.mark.parametrize(
        "content_id,sequence_id,expected",
        [
            (1, None, (1, 0)),
            ("42", None, (42, 0)),
            (42, 0, (42, 0)),
            (42, "0", (42, 0)),
            (42, "", (42, 0)),
            (42, 7, (42, 7)),
            ("42", "7", (42, 7)),
            (42.0, None, (42, 0)),
            (0, None, (0, 0)),
            ("0", "0", (0, 0)),
            (MAX_ID, MAX_ID, (MAX_ID, MAX_ID)),
        ],
    )
    def test_valid(self, content_id, sequence_id, expected):
        assert validate_ids(content_id, sequence_id) == expected

    @pytest.mark.parametrize(
        "content_id",
        [None, "", "abc", "12a", -5, "-5", 1.5, True, [1], MAX_ID + 1, str(10**30), 1e30],
    )
    def test_invalid_content_id(self, content_id):
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_ids(content_id)
        assert exc_info.value.message == "Missing or invalid content_id"

    @pytest.mark.parametrize(
        "sequence_id", ["abc", "1.5", -1, 2.5, {"a": 1}, MAX_ID + 1, str(10**30)]
    )
    def test_invalid_sequence_id(self, sequence_id):
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_ids(1, sequence_id)
        assert exc_info.value.message == "Invalid sequence_id"

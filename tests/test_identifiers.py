"""Tests for remote identifier normalization."""

from __future__ import annotations

import pytest

from shopassets.core.errors import InvalidIdentifierError
from shopassets.core.identifiers import RemoteId


class TestRemoteIdParse:
    def test_bare_id_is_qualified(self):
        remote_id = RemoteId.parse("12345", "GenericFile")
        assert remote_id.gid == "gid://shopify/GenericFile/12345"
        assert str(remote_id) == remote_id.gid

    def test_qualified_id_round_trips(self):
        remote_id = RemoteId.parse("gid://shopify/MediaImage/987", "MediaImage")
        assert remote_id.local_id == "987"
        assert remote_id.resource_type == "MediaImage"

    def test_query_string_is_ignored(self):
        remote_id = RemoteId.parse("gid://shopify/GenericFile/42?version=3", "GenericFile")
        assert remote_id.gid == "gid://shopify/GenericFile/42"

    def test_surrounding_whitespace_is_stripped(self):
        assert RemoteId.parse("  77 ", "Metaobject").local_id == "77"

    def test_mismatched_resource_type(self):
        with pytest.raises(InvalidIdentifierError, match="expected GenericFile"):
            RemoteId.parse("gid://shopify/MediaImage/1", "GenericFile")

    @pytest.mark.parametrize(
        "value",
        ["", "   ", "gid://other/GenericFile/1", "gid://shopify/GenericFile", "../../etc", "1/2"],
    )
    def test_malformed_values(self, value):
        with pytest.raises(InvalidIdentifierError):
            RemoteId.parse(value, "GenericFile")

    def test_invalid_identifier_is_a_value_error(self):
        with pytest.raises(ValueError):
            RemoteId.parse("", "GenericFile")


def test_remote_ids_compare_by_value():
    assert RemoteId("ProductImage", "5") == RemoteId.parse("gid://shopify/ProductImage/5", "ProductImage")
    assert len({RemoteId("ProductImage", "5"), RemoteId("ProductImage", "5")}) == 1

"""
Tests for the organization registry and serial normalization.
"""

import pytest

from core.domain.models import OrganizationCredential, mask_api_key
from core.domain.serial import is_valid_serial, normalize_serial, normalize_serial_pair
from core.errors import (
    ConfigurationError,
    SameSerialError,
    UnknownOrganizationError,
    ValidationFormatError,
)
from core.services.registry import OrganizationRegistry, parse_organization_mapping


# =============================================================================
# Mapping parser
# =============================================================================

class TestParseOrganizationMapping:
    """Test ORG_ID:API_KEY parsing."""

    def test_preserves_configuration_order(self):
        creds = parse_organization_mapping("222:key-two, 111:key-one ,333:key-three")
        assert [c.organization_id for c in creds] == ["222", "111", "333"]
        assert creds[1].api_key == "key-one"

    def test_api_key_may_contain_colons(self):
        creds = parse_organization_mapping("111:abc:def")
        assert creds[0].api_key == "abc:def"

    @pytest.mark.parametrize("mapping", [None, "", "   "])
    def test_missing_mapping_is_rejected(self, mapping):
        with pytest.raises(ConfigurationError, match="MERAKI_ORGS is required"):
            parse_organization_mapping(mapping)

    @pytest.mark.parametrize("mapping", ["111", "111:", ":key", "111:key,,222:key2"])
    def test_malformed_entry_is_rejected(self, mapping):
        with pytest.raises(ConfigurationError, match="Expected format: ORG_ID:API_KEY"):
            parse_organization_mapping(mapping)

    def test_duplicate_organization_is_rejected(self):
        with pytest.raises(ConfigurationError, match="listed twice"):
            parse_organization_mapping("111:a,111:b")


# =============================================================================
# Registry
# =============================================================================

class TestOrganizationRegistry:
    """Test client table construction and lookups."""

    def test_binds_one_client_per_organization(self):
        built = []

        def factory(credential: OrganizationCredential):
            built.append(credential.organization_id)
            return object()

        registry = OrganizationRegistry.load("A:key-aaaaaaaaaaaa,B:key-bbbbbbbbbbbb", factory)

        assert built == ["A", "B"]
        assert len(registry) == 2
        assert registry.organization_ids == ["A", "B"]
        assert "A" in registry
        assert "C" not in registry
        assert [c.organization_id for c in registry] == ["A", "B"]

    def test_unknown_organization_lookup_fails(self, make_registry):
        registry = make_registry()
        with pytest.raises(UnknownOrganizationError) as excinfo:
            registry.client_for("ZZZ")
        assert excinfo.value.code == "unknown_organization"
        with pytest.raises(UnknownOrganizationError):
            registry.credential_for("ZZZ")

    def test_empty_credentials_are_rejected(self):
        with pytest.raises(ConfigurationError):
            OrganizationRegistry([], lambda c: object())

    @pytest.mark.asyncio
    async def test_aclose_closes_every_client(self, cloud, make_registry):
        cloud.add_org("B", "Org B")
        registry = make_registry("A:key-a-0123456789,B:key-b-0123456789")

        await registry.aclose()

        assert cloud.closed == ["A", "B"]


class TestMaskApiKey:
    """Test API key masking."""

    def test_long_key_shows_prefix_and_suffix(self):
        assert mask_api_key("abcdef1234567890wxyz") == "abcdef...wxyz"

    def test_short_key_is_fully_masked(self):
        assert mask_api_key("short") == "*****"

    def test_credential_repr_hides_key(self):
        credential = OrganizationCredential(organization_id="A", api_key="super-secret-key-1234")
        assert "super-secret" not in repr(credential)


# =============================================================================
# Serial format
# =============================================================================

class TestSerialFormat:
    """Test XXXX-XXXX-XXXX validation and normalization."""

    @pytest.mark.parametrize("value", ["Q2XX-AAAA-1111", "q2xx-aaaa-1111", "  AAAA-1111-BBBB "])
    def test_valid_serials(self, value):
        assert is_valid_serial(value)

    @pytest.mark.parametrize("value", ["", "Q2XX-AAAA", "Q2XX_AAAA_1111", "Q2XX-AAAA-11111", "Q2X!-AAAA-1111"])
    def test_invalid_serials(self, value):
        assert not is_valid_serial(value)

    def test_normalize_uppercases_and_strips(self):
        assert normalize_serial(" q2xx-aaaa-1111 ") == "Q2XX-AAAA-1111"

    def test_normalize_rejects_bad_format(self):
        with pytest.raises(ValidationFormatError, match="Invalid replacement device serial format"):
            normalize_serial("nope", field="replacement device")

    def test_pair_rejects_identical_serials_ignoring_case(self):
        with pytest.raises(SameSerialError):
            normalize_serial_pair("AAAA-1111-BBBB", "aaaa-1111-bbbb")

"""Unit tests for FingerprintValidator.

Tests cover:
- IPv4 and IPv6 prefix truncation (bit-level, configurable)
- IPv4-mapped IPv6 addresses
- Missing or invalid addresses collapse to "unknown"
- User agent hashing
- OFF / SOFT / STRICT comparison outcomes
"""

import hashlib

import pytest

from sessionlayer.application.fingerprint_validator import FingerprintValidator
from sessionlayer.domain.enums import FingerprintMode, FingerprintOutcome
from sessionlayer.domain.value_objects import ClientInfo, Fingerprint


@pytest.mark.unit
class TestIpPrefix:
    """Network prefix extraction."""

    def test_ipv4_default_24(self):
        assert FingerprintValidator().ip_prefix("10.0.1.5") == "10.0.1.0/24"

    def test_ipv4_same_subnet_same_prefix(self):
        validator = FingerprintValidator()

        assert validator.ip_prefix("10.0.1.5") == validator.ip_prefix("10.0.1.99")

    def test_ipv4_other_subnet_differs(self):
        validator = FingerprintValidator()

        assert validator.ip_prefix("10.0.1.5") != validator.ip_prefix("10.0.2.5")

    def test_ipv4_16_tolerates_carrier_hops(self):
        validator = FingerprintValidator(ipv4_prefix_length=16)

        assert validator.ip_prefix("10.0.1.5") == "10.0.0.0/16"
        assert validator.ip_prefix("10.0.2.5") == "10.0.0.0/16"

    def test_ipv4_non_octet_prefix(self):
        validator = FingerprintValidator(ipv4_prefix_length=20)

        assert validator.ip_prefix("192.168.31.200") == "192.168.16.0/20"

    def test_ipv6_default_64(self):
        validator = FingerprintValidator()

        assert validator.ip_prefix("2001:db8:abcd:12:1:2:3:4") == "2001:db8:abcd:12::/64"

    def test_ipv6_48(self):
        validator = FingerprintValidator(ipv6_prefix_length=48)

        assert validator.ip_prefix("2001:db8:abcd:12:1:2:3:4") == "2001:db8:abcd::/48"

    def test_ipv4_mapped_treated_as_ipv4(self):
        validator = FingerprintValidator()

        assert validator.ip_prefix("::ffff:10.0.1.5") == "10.0.1.0/24"

    @pytest.mark.parametrize("address", [None, "", "not-an-ip", "999.1.1.1"])
    def test_unknown_addresses(self, address):
        assert FingerprintValidator().ip_prefix(address) == "unknown"

    def test_invalid_prefix_lengths_raise(self):
        with pytest.raises(ValueError):
            FingerprintValidator(ipv4_prefix_length=33)
        with pytest.raises(ValueError):
            FingerprintValidator(ipv6_prefix_length=-1)


@pytest.mark.unit
class TestCompute:
    def test_user_agent_hash_is_sha256(self):
        expected = hashlib.sha256(b"curl/8.0").hexdigest()

        assert FingerprintValidator.user_agent_hash("curl/8.0") == expected

    def test_missing_user_agent_hashes_empty_string(self):
        expected = hashlib.sha256(b"").hexdigest()

        assert FingerprintValidator.user_agent_hash(None) == expected

    def test_compute(self):
        fingerprint = FingerprintValidator().compute(
            ClientInfo(ip_address="10.0.1.5", user_agent="curl/8.0")
        )

        assert fingerprint.ip_prefix == "10.0.1.0/24"
        assert fingerprint.user_agent_hash == hashlib.sha256(b"curl/8.0").hexdigest()


@pytest.mark.unit
class TestValidate:
    """Comparison outcomes per mode."""

    stored = Fingerprint(ip_prefix="10.0.1.0/24", user_agent_hash="a" * 64)
    moved = Fingerprint(ip_prefix="10.0.2.0/24", user_agent_hash="a" * 64)

    def test_match(self):
        outcome = FingerprintValidator().validate(
            self.stored, self.stored, FingerprintMode.STRICT
        )

        assert outcome is FingerprintOutcome.MATCH

    def test_off_ignores_mismatch(self):
        outcome = FingerprintValidator().validate(
            self.stored, self.moved, FingerprintMode.OFF
        )

        assert outcome is FingerprintOutcome.MATCH

    def test_soft_logs_mismatch(self):
        outcome = FingerprintValidator().validate(
            self.stored, self.moved, FingerprintMode.SOFT
        )

        assert outcome is FingerprintOutcome.MISMATCH_LOGGED

    def test_strict_invalidates_mismatch(self):
        outcome = FingerprintValidator().validate(
            self.stored, self.moved, FingerprintMode.STRICT
        )

        assert outcome is FingerprintOutcome.MISMATCH_INVALIDATED

    def test_missing_stored_fingerprint_matches(self):
        outcome = FingerprintValidator().validate(
            None, self.moved, FingerprintMode.STRICT
        )

        assert outcome is FingerprintOutcome.MATCH

    def test_mismatched_components(self):
        other_browser = Fingerprint(ip_prefix="10.0.2.0/24", user_agent_hash="b" * 64)

        assert FingerprintValidator.mismatched_components(self.stored, self.moved) == [
            "ip_prefix"
        ]
        assert FingerprintValidator.mismatched_components(
            self.stored, other_browser
        ) == ["ip_prefix", "user_agent_hash"]

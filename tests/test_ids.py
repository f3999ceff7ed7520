"""Tests for entity id / EVM address conversion."""

import pytest

from contract_deployer.ledger import (
    InvalidIdentifierError,
    as_solidity_address,
    entity_id_to_solidity_address,
    solidity_address_to_entity_id,
)


class TestEntityIdConversion:
    def test_long_zero_address(self):
        assert entity_id_to_solidity_address("0.0.1001") == "00000000000000000000000000000000000003e9"

    def test_shard_and_realm_are_encoded(self):
        address = entity_id_to_solidity_address("1.2.3")

        assert address == "00000001" + "0000000000000002" + "0000000000000003"

    def test_checksum_suffix_accepted(self):
        assert entity_id_to_solidity_address("0.0.1001-abcde").endswith("3e9")

    def test_back_to_entity_id(self):
        assert solidity_address_to_entity_id("0x00000000000000000000000000000000000003E9") == "0.0.1001"

    @pytest.mark.parametrize("value", ["", "0.0", "a.b.c", "0.0.-1", "0.0.18446744073709551616"])
    def test_invalid_entity_ids(self, value):
        with pytest.raises(InvalidIdentifierError):
            entity_id_to_solidity_address(value)

    def test_invalid_address(self):
        with pytest.raises(InvalidIdentifierError):
            solidity_address_to_entity_id("0x1234")

    def test_as_solidity_address_accepts_both_forms(self):
        address = "00000000000000000000000000000000000003e9"

        assert as_solidity_address("0.0.1001") == address
        assert as_solidity_address("0x" + address.upper()) == address

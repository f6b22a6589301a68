from __future__ import annotations

import base58
import pytest

from verify_services.errors import MetadataReferenceMissing
from verify_services.services.locator import ContentAddress, locate

from tests.fixtures import DEPLOYED, LOGIC, SOLC_VERSION, make_bytecode

SWARM_0 = bytes(range(32))
SWARM_1 = bytes(range(32, 64))


def test_ipfs_reference_is_base58_multihash():
    # sha2-256 multihash of 32 zero bytes
    digest = bytes.fromhex("1220" + "00" * 32)
    expected = base58.b58encode(digest).decode("ascii")
    address = locate(make_bytecode({"ipfs": digest, "solc": SOLC_VERSION}))
    assert address == ContentAddress("ipfs", expected)
    assert address.path == "/ipfs/" + expected
    assert expected.startswith("Qm")


def test_ipfs_reference_from_fixture_bytecode():
    address = locate(DEPLOYED)
    assert address.scheme == "ipfs"
    assert address.path.startswith("/ipfs/Qm")


def test_bzzr1_reference_is_hex():
    address = locate(make_bytecode({"bzzr1": SWARM_1, "solc": SOLC_VERSION}))
    assert address.path == "/swarm/bzzr1/" + SWARM_1.hex()
    assert address.parts == ("swarm", "bzzr1", SWARM_1.hex())


def test_bzzr0_has_priority():
    code = make_bytecode({"ipfs": bytes.fromhex("1220" + "00" * 32), "bzzr1": SWARM_1, "bzzr0": SWARM_0})
    assert locate(code).path == "/swarm/bzzr0/" + SWARM_0.hex()


def test_bzzr1_before_ipfs():
    code = make_bytecode({"ipfs": bytes.fromhex("1220" + "00" * 32), "bzzr1": SWARM_1})
    assert locate(code).scheme == "bzzr1"


def test_trailer_without_reference_keys():
    with pytest.raises(MetadataReferenceMissing) as exc:
        locate(make_bytecode({"solc": SOLC_VERSION}), chain="1", address="0xabc")
    assert exc.value.status_code == 500
    assert exc.value.details["loc"] == "[STOREDATA]"
    assert exc.value.details["address"] == "0xabc"


@pytest.mark.parametrize("code", ["0x", LOGIC + "00ff"])
def test_missing_or_unreadable_trailer(code):
    with pytest.raises(MetadataReferenceMissing):
        locate(code)

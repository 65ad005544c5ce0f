import hashlib

import pytest

from kts.core.constants import DAILY_USAGE_SEED, DEVICE_SEED
from kts.core.errors import SeedLimitExceeded
from kts.services.addressing import AddressDeriver, timestamp_seed

from conftest import fingerprint


def test_derive_is_deterministic(deriver):
    fp = fingerprint("h1")
    assert deriver.device_address(fp) == deriver.device_address(fp)
    assert len(deriver.device_address(fp)) == 32


def test_derive_matches_documented_digest():
    deriver = AddressDeriver(b"kts")
    fp = fingerprint("h1")
    expected = hashlib.sha256(DEVICE_SEED + fp + b"kts" + b"ProgramDerivedAddress").digest()
    assert deriver.device_address(fp) == expected


def test_namespaces_and_seeds_separate_addresses(deriver):
    fp = fingerprint("h1")
    device = deriver.device_address(fp)
    day1 = deriver.usage_address(fp, 1700000000)
    day2 = deriver.usage_address(fp, 1700086400)
    other_device = deriver.device_address(fingerprint("h2"))
    assert len({device, day1, day2, other_device}) == 4


def test_program_domain_changes_addresses():
    fp = fingerprint("h1")
    assert AddressDeriver(b"a").device_address(fp) != AddressDeriver(b"b").device_address(fp)


def test_usage_address_uses_little_endian_signed_timestamp(deriver):
    fp = fingerprint("h1")
    assert timestamp_seed(1) == b"\x01" + b"\x00" * 7
    assert timestamp_seed(-1) == b"\xff" * 8
    assert deriver.usage_address(fp, -1) == deriver.derive(DAILY_USAGE_SEED, fp, b"\xff" * 8)


def test_seed_limits(deriver):
    with pytest.raises(SeedLimitExceeded):
        deriver.derive(DEVICE_SEED, b"x" * 33)
    with pytest.raises(SeedLimitExceeded):
        deriver.derive(DEVICE_SEED, *([b"x"] * 16))
    assert len(deriver.derive(DEVICE_SEED, *([b"x"] * 15))) == 32

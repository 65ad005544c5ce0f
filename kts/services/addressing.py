import hashlib

from kts.core.constants import (
    DAILY_USAGE_SEED,
    DEVICE_SEED,
    MAX_SEED_LENGTH,
    MAX_SEEDS,
    PDA_MARKER,
)
from kts.core.errors import SeedLimitExceeded


def timestamp_seed(timestamp: int) -> bytes:
    return timestamp.to_bytes(8, "little", signed=True)


class AddressDeriver:
    """
    Maps (namespace, seeds...) to a 32-byte storage address.

    Pure and deterministic: the address is a SHA-256 digest over the namespace,
    the seeds in order, the program domain and a fixed marker. Records are both
    located and de-duplicated by this address.
    """

    def __init__(self, program_domain: bytes):
        self.program_domain = program_domain

    def derive(self, namespace: bytes, *seeds: bytes) -> bytes:
        parts = (namespace, *seeds)
        if len(parts) > MAX_SEEDS:
            raise SeedLimitExceeded(f"At most {MAX_SEEDS} seeds allowed, got {len(parts)}")
        digest = hashlib.sha256()
        for part in parts:
            if len(part) > MAX_SEED_LENGTH:
                raise SeedLimitExceeded(f"Seed of {len(part)} bytes exceeds {MAX_SEED_LENGTH}")
            digest.update(part)
        digest.update(self.program_domain)
        digest.update(PDA_MARKER)
        return digest.digest()

    def device_address(self, device_fingerprint: bytes) -> bytes:
        return self.derive(DEVICE_SEED, device_fingerprint)

    def usage_address(self, device_fingerprint: bytes, timestamp: int) -> bytes:
        return self.derive(DAILY_USAGE_SEED, device_fingerprint, timestamp_seed(timestamp))

import hashlib

# Address namespaces
DEVICE_SEED = b"device"
DAILY_USAGE_SEED = b"daily_usage"
PDA_MARKER = b"ProgramDerivedAddress"

MAX_SEED_LENGTH = 32
MAX_SEEDS = 16
ADDRESS_LENGTH = 32
HASH_LENGTH = 32
IDENTITY_LENGTH = 32

# Input limits (bytes, UTF-8)
MAX_DEVICE_NAME_LENGTH = 64
MAX_PROCESS_NAME_LENGTH = 32
PROCESS_ARRAY_SIZE = 5
PROCESS_BLOCK_SIZE = MAX_PROCESS_NAME_LENGTH * PROCESS_ARRAY_SIZE  # 160

TAG_LENGTH = 8
DEVICE_ACCOUNT_SIZE = TAG_LENGTH + 32 + 32 + 8 + 1  # 81
DAILY_USAGE_ACCOUNT_SIZE = (
    TAG_LENGTH
    + 32  # device address
    + 8  # timestamp
    + 4  # avg_cpu_usage
    + 4  # avg_memory_usage
    + PROCESS_BLOCK_SIZE
    + 32  # data hash
    + 8  # created_at
)  # 256


def record_tag(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode()).digest()[:TAG_LENGTH]


DEVICE_ACCOUNT_TAG = record_tag("DeviceAccount")
DAILY_USAGE_ACCOUNT_TAG = record_tag("DailyUsageAccount")

I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

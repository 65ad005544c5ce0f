from typing import Annotated

from pydantic import AfterValidator, BaseModel, StringConstraints

HEX32_PATTERN = r"^[0-9a-fA-F]{64}$"

# 32-byte values (fingerprints, hashes, identities, addresses) travel as hex.
Hex32 = Annotated[str, StringConstraints(pattern=HEX32_PATTERN, to_lower=True)]


def _utf8_encodable(value: str) -> str:
    # JSON escapes can smuggle in lone surrogates, which have no UTF-8 form.
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValueError("string is not valid UTF-8") from exc
    return value


Utf8Str = Annotated[str, AfterValidator(_utf8_encodable)]


class AccountOut(BaseModel):
    """Packed record bytes as stored on a ledger, base64 encoded."""

    address: str
    size: int
    data: str

from fastapi import Header, HTTPException, status, Depends
from kts.core.config import Settings
from kts.core.constants import IDENTITY_LENGTH
from kts.core.deps import get_redis, get_settings_dep
from kts.core.security import verify_token, TokenClaims


async def get_current_claims(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings_dep),
    redis=Depends(get_redis),
) -> TokenClaims:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1]
    claims = verify_token(token, settings, expected_typ="access")
    if claims.jti and await redis.get(f"revoked:jti:{claims.jti}"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token revoked")
    return claims


def parse_identity(subject: str) -> bytes:
    try:
        identity = bytes.fromhex(subject)
    except ValueError:
        identity = b""
    if len(identity) != IDENTITY_LENGTH:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token subject is not a ledger identity")
    return identity


async def get_caller_identity(claims: TokenClaims = Depends(get_current_claims)) -> bytes:
    """The verified, opaque 32-byte identity the registry authorizes against."""
    return parse_identity(claims.sub)


async def check_rate_limit(redis, key: str, limit: int, window: int) -> bool:
    current = await redis.incr(key)
    if current == 1:
        await redis.expire(key, window)
    return current <= limit


async def enforce_write_rate_limit(
    caller: bytes = Depends(get_caller_identity),
    settings: Settings = Depends(get_settings_dep),
    redis=Depends(get_redis),
) -> bytes:
    allowed = await check_rate_limit(redis, f"rl:write:{caller.hex()}", settings.write_rate_limit, settings.write_rate_window)
    if not allowed:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Rate limit exceeded")
    return caller

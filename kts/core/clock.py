import datetime as dt


def host_clock_now() -> int:
    """Trusted unix timestamp (seconds) stamped on records at creation."""
    return int(dt.datetime.now(dt.timezone.utc).timestamp())

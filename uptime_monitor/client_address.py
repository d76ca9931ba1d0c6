from typing import Mapping, Optional

# Checked in order when the server sits behind a trusted reverse proxy.
# Some proxies send the bare names without the X- prefix.
FORWARDED_HEADERS = ("X-Forwarded-For", "Forwarded-For", "X-Real-IP", "Real-IP")


def normalize_remote_address(remote_address: Optional[str]) -> str:
    """Drop everything up to the last colon, e.g. '::ffff:10.0.0.5' -> '10.0.0.5'."""
    if not remote_address:
        return ""
    return remote_address.rsplit(":", 1)[-1]


def _header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    if not headers:
        return None
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                value = candidate
                break
    return value or None


def resolve_client_ip(remote_address: Optional[str], headers: Optional[Mapping[str, str]],
                      trust_proxy: bool) -> str:
    """
    Address to attribute to a client connection.

    Forwarded headers are honoured only when ``trust_proxy`` is set; otherwise
    they are ignored so a client cannot spoof its address.
    """
    client_ip = normalize_remote_address(remote_address)
    if not trust_proxy:
        return client_ip

    for name in FORWARDED_HEADERS:
        value = _header(headers, name)
        if value:
            return value
    return client_ip


async def get_client_ip(session, settings) -> str:
    """Resolve the address of a live session, reading trustProxy on every call."""
    trust_proxy = bool(await settings.get("trustProxy"))
    return resolve_client_ip(session.remote_address, session.headers, trust_proxy)

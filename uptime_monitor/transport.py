import logging
import ssl
from dataclasses import dataclass
from typing import Optional

from .config import ConfigurationError

log = logging.getLogger("UptimeMonitor.Transport")


@dataclass(frozen=True)
class Listener:
    """Where and how the server accepts connections. Fixed for the process lifetime."""
    host: str
    port: int
    ssl_context: Optional[ssl.SSLContext] = None

    @property
    def scheme(self) -> str:
        return "https" if self.ssl_context is not None else "http"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


def create_ssl_context(ssl_key: str, ssl_cert: str) -> ssl.SSLContext:
    ssl_context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
    try:
        ssl_context.load_cert_chain(certfile=ssl_cert, keyfile=ssl_key)
    except (OSError, ssl.SSLError) as exc:
        raise ConfigurationError(f"Unable to load TLS key/certificate: {exc}") from exc
    return ssl_context


def create_listener(host: str, port: int, ssl_key: Optional[str] = None,
                    ssl_cert: Optional[str] = None) -> Listener:
    if ssl_key and ssl_cert:
        log.info("Server Type: HTTPS")
        return Listener(host, port, create_ssl_context(ssl_key, ssl_cert))

    if ssl_key or ssl_cert:
        log.warning("Only one of the TLS key/certificate is set, falling back to plain HTTP.")
    log.info("Server Type: HTTP")
    return Listener(host, port)

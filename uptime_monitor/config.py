import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

# --- Configuration ---
# The data directory holds the SQLite database and error.log. The service
# files set the working directory so the relative default resolves next to
# the installation. Override with UPTIME_MONITOR_DATA_DIR.
DATA_DIR = os.getenv('UPTIME_MONITOR_DATA_DIR', './data/')
DATABASE_FILE = os.getenv('UPTIME_MONITOR_DB_PATH', os.path.join(DATA_DIR, 'kuma.db'))
ERROR_LOG_FILENAME = 'error.log'

# Shell document served to bootstrap the web UI. Read once at startup.
INDEX_HTML_PATH = './dist/index.html'
STATIC_DIR = './dist'

# "development" tolerates a missing dist/index.html, anything else is fatal.
ENVIRONMENT = os.getenv('UPTIME_MONITOR_ENV', 'production')
DEVELOPMENT_ENV = 'development'

SERVER_HOST = "0.0.0.0"
SERVER_PORT = 3001
ENTRY_PAGE = "dashboard"
WEBSOCKET_HEARTBEAT_SECONDS = 25

# --- TLS material lookup, in priority order after the explicit argument ---
SSL_KEY_ENV_VARS = ('UPTIME_MONITOR_SSL_KEY', 'SSL_KEY')
SSL_CERT_ENV_VARS = ('UPTIME_MONITOR_SSL_CERT', 'SSL_CERT')

# --- Outbound connections ---
DNS_CACHE_TTL_SECONDS = 300
OUTBOUND_CONNECTION_LIMIT = 100

# --- Database Concurrency Configuration ---
DB_THREAD_POOL_SIZE = 5
DB_CONNECTION_TIMEOUT = 30.0  # seconds
DB_MAX_RETRIES = 3  # Number of retry attempts for locked database
DB_RETRY_BASE_DELAY = 0.5  # Base delay between retries (seconds)
DB_RETRY_MAX_DELAY = 5.0  # Maximum delay between retries (seconds)

DEFAULT_MONITOR_WEIGHT = 2000


class ConfigurationError(Exception):
    """Raised when startup configuration is unusable. Always fatal."""


def _first_set(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


@dataclass(frozen=True)
class ServerConfig:
    """Startup configuration, resolved once before anything is constructed."""
    host: str = SERVER_HOST
    port: int = SERVER_PORT
    ssl_key: Optional[str] = None
    ssl_cert: Optional[str] = None
    data_dir: str = DATA_DIR
    database_file: str = DATABASE_FILE
    index_html_path: str = INDEX_HTML_PATH
    static_dir: str = STATIC_DIR
    environment: str = ENVIRONMENT

    @property
    def is_development(self) -> bool:
        return self.environment == DEVELOPMENT_ENV

    @property
    def tls_enabled(self) -> bool:
        return bool(self.ssl_key and self.ssl_cert)

    @classmethod
    def from_sources(cls, args: Optional[Mapping[str, Any]] = None,
                     environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Build the config from explicit arguments and the environment.

        Precedence for each TLS path: explicit argument, then the
        UPTIME_MONITOR_* variable, then the generic SSL_* variable, then unset.
        """
        args = args or {}
        environ = os.environ if environ is None else environ

        ssl_key = _first_set(args.get('ssl_key'), *(environ.get(name) for name in SSL_KEY_ENV_VARS))
        ssl_cert = _first_set(args.get('ssl_cert'), *(environ.get(name) for name in SSL_CERT_ENV_VARS))

        data_dir = args.get('data_dir') or environ.get('UPTIME_MONITOR_DATA_DIR') or DATA_DIR
        database_file = (args.get('database_file') or environ.get('UPTIME_MONITOR_DB_PATH')
                         or os.path.join(data_dir, 'kuma.db'))

        config = cls(
            host=args.get('host') or SERVER_HOST,
            port=int(args.get('port') or SERVER_PORT),
            ssl_key=ssl_key,
            ssl_cert=ssl_cert,
            data_dir=data_dir,
            database_file=database_file,
            index_html_path=args.get('index_html_path') or INDEX_HTML_PATH,
            static_dir=args.get('static_dir') or STATIC_DIR,
            environment=environ.get('UPTIME_MONITOR_ENV', ENVIRONMENT),
        )
        config.validate()
        return config

    def validate(self):
        if not 1 <= self.port <= 65535:
            raise ConfigurationError(f"Invalid port: {self.port}")
        for label, path in (("private key", self.ssl_key), ("certificate", self.ssl_cert)):
            if path is not None and not path.strip():
                raise ConfigurationError(f"Empty TLS {label} path")

import argparse
import logging
import os
import sys

# Allows running the package directory directly (e.g. `python uptime_monitor`)
# by putting the project root on the path before the absolute imports below.
if __package__ is None or __package__ == '':
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from uptime_monitor import database
from uptime_monitor.config import ConfigurationError, ServerConfig
from uptime_monitor.server import UptimeMonitorServer

# --- Centralized Logging Configuration ---
log = logging.getLogger("UptimeMonitor")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Uptime Monitor - realtime dashboard server",
        epilog="""
Examples:
  # Plain HTTP on the default port
  %(prog)s

  # HTTPS with explicit key and certificate
  %(prog)s --ssl-key /etc/ssl/private/kuma.key --ssl-cert /etc/ssl/certs/kuma.crt

TLS paths may also come from UPTIME_MONITOR_SSL_KEY / UPTIME_MONITOR_SSL_CERT
or SSL_KEY / SSL_CERT. Set UPTIME_MONITOR_ENV=development to run without a
built frontend.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--ssl-key', help="Path to the TLS private key.")
    parser.add_argument('--ssl-cert', help="Path to the TLS certificate.")
    parser.add_argument('--host', help="Address to listen on.")
    parser.add_argument('--port', type=int, help="Port to listen on.")
    parser.add_argument('--data-dir', help="Directory for the database and error.log.")
    parser.add_argument('--debug', action='store_true', help="Enable debug logging.")
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(level=log_level, format='%(asctime)s [%(levelname)s] [%(name)s] %(message)s',
                        datefmt='%Y-%m-%d %H:%M:%S')

    try:
        config = ServerConfig.from_sources(vars(args))
        database.init_db(config.database_file)
        server = UptimeMonitorServer.get_instance(config)
    except ConfigurationError as e:
        log.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    server.run()


if __name__ == "__main__":
    main()

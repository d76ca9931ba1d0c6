import asyncio
import concurrent.futures
import json
import logging
import os
import sys
import threading
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

import aiohttp
from aiohttp import web

from .cacheable_dns import CacheableDnsConnector
from .client_address import get_client_ip
from .config import DB_THREAD_POOL_SIZE, ENTRY_PAGE, WEBSOCKET_HEARTBEAT_SECONDS, ServerConfig
from .database import blocking_get_monitors_for_user
from . import error_journal
from .error_journal import async_error_log
from .rooms import RoomRegistry, Session
from .settings import Settings
from .transport import create_listener

log = logging.getLogger("UptimeMonitor.Server")

# Resolves a login token to a user id, or None when the token is not valid.
Authenticator = Callable[[Any, Session], Awaitable[Optional[Hashable]]]


def load_index_html(path: str, is_development: bool) -> str:
    """Read the shell document once. Missing or unreadable outside development is fatal."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        # dist/index.html is not needed while developing the frontend
        if not is_development:
            log.critical(f"Cannot read '{path}' ({e}), did you build the frontend and install correctly?")
            sys.exit(1)
        log.warning(f"Cannot read '{path}' ({e}), serving without a cached shell document (development mode).")
        return ""


@web.middleware
async def error_journal_middleware(request, handler):
    """Record unexpected handler failures in error.log before aiohttp turns them into a 500."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        log.error(f"Unhandled error while serving {request.path}:", exc_info=True)
        await async_error_log(e, False, request.app["server"].config.data_dir)
        raise


class UptimeMonitorServer:
    """
    The process-wide server: transport, realtime hub and cached shell page.

    Obtain it with ``get_instance()``; the first call builds it, later calls
    return the same object and ignore their argument.
    """

    _instance: Optional["UptimeMonitorServer"] = None
    _instance_lock = threading.Lock()

    @classmethod
    def get_instance(cls, config: Optional[ServerConfig] = None) -> "UptimeMonitorServer":
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls(config or ServerConfig.from_sources())
        return cls._instance

    def __init__(self, config: ServerConfig):
        if type(self)._instance is not None:
            raise RuntimeError("UptimeMonitorServer already exists, use UptimeMonitorServer.get_instance()")

        self.config = config
        # Main monitor list, filled by the monitor scheduler
        self.monitor_list: Dict[Any, Any] = {}
        self.entry_page = ENTRY_PAGE
        self.rooms = RoomRegistry()
        self.sessions = set()
        self.authenticator: Optional[Authenticator] = None
        self.db_executor: Optional[concurrent.futures.Executor] = None

        self.settings = Settings(config.database_file)

        log.info("Creating aiohttp application and websocket hub")
        self.listener = create_listener(config.host, config.port, config.ssl_key, config.ssl_cert)
        self.index_html = load_index_html(config.index_html_path, config.is_development)
        CacheableDnsConnector.register_global_agent()
        self.app = self.create_app()

    # --- Application wiring ---

    def create_app(self) -> web.Application:
        app = web.Application(middlewares=[error_journal_middleware])
        app["server"] = self
        app.on_startup.append(self.on_startup)
        app.on_cleanup.append(self.on_cleanup)

        app.router.add_get("/", self.handle_root)
        app.router.add_get("/ws", self.websocket_handler)
        assets_path = os.path.join(self.config.static_dir, "assets")
        if os.path.isdir(assets_path):
            app.router.add_static("/assets/", path=assets_path, name="assets")
        app.router.add_get("/{tail:.*}", self.handle_index)
        return app

    async def on_startup(self, app):
        self.db_executor = concurrent.futures.ThreadPoolExecutor(max_workers=DB_THREAD_POOL_SIZE)
        self.settings.executor = self.db_executor
        log.info(f"Database thread pool initialized with {DB_THREAD_POOL_SIZE} workers")

    async def on_cleanup(self, app):
        log.warning("Application cleanup started.")
        for session in list(self.sessions):
            await session.ws.close(code=aiohttp.WSCloseCode.GOING_AWAY, message=b"Server shutdown")
        await CacheableDnsConnector.close()
        if self.db_executor is not None:
            self.db_executor.shutdown(wait=True)
            self.db_executor = None
            log.info("db_executor shut down.")

    def run(self):
        log.info(f"Server starting on {self.listener.url}")
        web.run_app(self.app, host=self.listener.host, port=self.listener.port,
                    ssl_context=self.listener.ssl_context)

    # --- HTTP ---

    async def handle_root(self, request):
        raise web.HTTPFound(f"/{self.entry_page}")

    async def handle_index(self, request):
        if not self.index_html:
            raise web.HTTPNotFound(text="Frontend is not built (development mode).")
        response = web.Response(text=self.index_html, content_type="text/html")
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        return response

    # --- Realtime hub ---

    async def send_monitor_list(self, session: Session) -> Dict[Any, Dict[str, Any]]:
        """Push the user's monitor list to every session of that user and return it."""
        monitor_list = await self.get_monitor_json_list(session.user_id)
        await self.rooms.emit(session.user_id, "monitorList", monitor_list)
        return monitor_list

    async def get_monitor_json_list(self, user_id) -> Dict[Any, Dict[str, Any]]:
        """
        Get the monitors owned by ``user_id``, keyed by monitor id.

        The query orders by weight descending then name, so the mapping is
        built in that order. Database errors are not handled here.
        """
        loop = asyncio.get_running_loop()
        monitors = await loop.run_in_executor(
            self.db_executor, blocking_get_monitors_for_user, self.config.database_file, user_id
        )

        result = {}
        for monitor in monitors:
            result[monitor.id] = monitor.to_json()
        return result

    async def get_client_ip(self, session: Session) -> str:
        return await get_client_ip(session, self.settings)

    @staticmethod
    def error_log(error, output_to_console: bool = True):
        instance = UptimeMonitorServer._instance
        data_dir = instance.config.data_dir if instance is not None else None
        error_journal.error_log(error, output_to_console, data_dir)

    async def websocket_handler(self, request):
        ws = web.WebSocketResponse(heartbeat=WEBSOCKET_HEARTBEAT_SECONDS)
        await ws.prepare(request)
        session = Session(ws, remote_address=request.remote, headers=request.headers)
        self.sessions.add(session)

        try:
            client_ip = await self.get_client_ip(session)
        except Exception as e:
            log.warning(f"Could not resolve client address: {e}")
            client_ip = request.remote
        log.info(f"WebSocket client connected from {client_ip}. Total clients: {len(self.sessions)}")

        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        data = json.loads(msg.data)
                    except ValueError:
                        await session.send_json({"type": "error", "message": "Invalid JSON"})
                        continue
                    try:
                        await self.handle_message(session, data)
                    except Exception as e:
                        log.error("Error while handling websocket message:", exc_info=True)
                        await async_error_log(e, False, self.config.data_dir)
                        await session.send_json({"type": "error", "message": str(e)})
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    log.warning(f"WebSocket connection closed with exception {ws.exception()}")
        finally:
            self.rooms.leave_all(session)
            self.sessions.discard(session)
            log.info(f"WebSocket client {client_ip} disconnected. Total clients: {len(self.sessions)}")
        return ws

    async def handle_message(self, session: Session, data: Dict[str, Any]):
        msg_type = data.get("type") if isinstance(data, dict) else None

        if msg_type == "login":
            await self.login(session, data.get("token"))

        elif msg_type == "logout":
            if session.user_id is not None:
                self.rooms.leave(session.user_id, session)
                log.info(f"User {session.user_id} logged out")
            session.user_id = None
            await session.send_json({"type": "logoutResult", "ok": True})

        elif msg_type == "getMonitorList":
            if session.user_id is None:
                await session.send_json({"type": "error", "message": "You are not logged in."})
                return
            await self.send_monitor_list(session)

        else:
            await session.send_json({"type": "error", "message": f"Unknown message type: {msg_type}"})

    async def login(self, session: Session, token):
        if self.authenticator is None:
            log.warning("Login attempted but no authenticator is configured")
            await session.send_json({"type": "loginResult", "ok": False,
                                     "msg": "Authentication is not configured."})
            return

        user_id = await self.authenticator(token, session)
        if user_id is None:
            log.info(f"Failed login from {await self.get_client_ip(session)}")
            await session.send_json({"type": "loginResult", "ok": False, "msg": "Incorrect credentials."})
            return

        if session.user_id is not None and session.user_id != user_id:
            self.rooms.leave(session.user_id, session)
        session.user_id = user_id
        self.rooms.join(user_id, session)
        log.info(f"User {user_id} logged in")
        await session.send_json({"type": "loginResult", "ok": True})
        await self.send_monitor_list(session)

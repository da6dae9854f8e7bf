"""
Blur server

Accepts one connection at a time and runs it through a Job before accepting the
next. A misbehaving client only ever aborts its own job.
"""

import logging
import socket
import time
from collections.abc import Callable
from enum import StrEnum

from .errors import BindError, BlurServerError
from .gateway import AuditLog, AuditSink, JobRecord, RadiusCell, RadiusSource
from .pipeline import Job
from .settings import AppSettings, get_settings
from .storage import Workspace


logger = logging.getLogger(__name__)

ACCEPT_BACKOFF = 0.5


class ServerStatus(StrEnum):
    STARTING = "starting"
    WAITING = "waiting"
    HANDLING = "handling"
    READY = "ready"
    CLIENT_ERROR = "client_error"
    STOPPED = "stopped"


class BlurServer:
    def __init__(
        self,
        settings: AppSettings,
        radius_source: RadiusSource | None = None,
        audit_sink: AuditSink | None = None,
        workspace: Workspace | None = None,
        on_status: Callable[[ServerStatus, str], None] | None = None,
    ):
        self.settings = settings
        self.radius_source = radius_source or RadiusCell(settings.radius)
        self.audit_sink = audit_sink or AuditLog(settings.database_path)
        self.workspace = workspace or Workspace(settings.image_dir)
        if isinstance(self.radius_source, RadiusCell):
            self.radius_source.subscribe(lambda radius: logger.info("Radius set to %d", radius))
        self._on_status = on_status
        self._socket: socket.socket | None = None
        self.status = ServerStatus.STOPPED
        self._set_status(ServerStatus.STARTING)

    def _set_status(self, status: ServerStatus, detail: str = "") -> None:
        self.status = status
        logger.debug("Server status: %s %s", status, detail)
        if self._on_status is not None:
            self._on_status(status, detail)

    @property
    def address(self) -> tuple[str, int]:
        if self._socket is None:
            raise RuntimeError("server is not listening")
        return self._socket.getsockname()[:2]

    def start(self) -> None:
        """
        Prepare the working directory and audit table, then bind and listen.

        Raises:
            StorageError: working directory could not be created
            AuditError: audit database could not be initialised
            BindError: the listening socket could not be opened
        """
        self.workspace.ensure()
        initialize = getattr(self.audit_sink, "initialize", None)
        if initialize is not None:
            initialize()

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.settings.host, self.settings.port))
            sock.listen()
        except OSError as exc:
            sock.close()
            raise BindError(
                f"cannot listen on {self.settings.host}:{self.settings.port}: {exc}"
            ) from exc

        self._socket = sock
        host, port = self.address
        logger.info("Server is listening on %s:%d", host, port)
        self._set_status(ServerStatus.READY, f"port {port}")

    def handle_next(self) -> JobRecord | None:
        """Accept one connection and run its job; returns None if the job was aborted."""
        if self._socket is None:
            raise RuntimeError("server is not listening")

        self._set_status(ServerStatus.WAITING)
        try:
            conn, addr = self._socket.accept()
        except OSError as exc:
            if self._socket is not None:
                logger.warning("Accept failed: %s", exc)
                self._set_status(ServerStatus.CLIENT_ERROR, str(exc))
                time.sleep(ACCEPT_BACKOFF)
            return None
        logger.info("Connected by %s:%d", *addr[:2])
        self._set_status(ServerStatus.HANDLING, str(addr[0]))

        job = Job(
            conn,
            self.radius_source,
            self.audit_sink,
            self.workspace,
            max_frame_size=self.settings.max_frame_size,
            chunk_size=self.settings.chunk_size,
            workers=self.settings.workers,
        )
        with conn:
            try:
                record = job.run()
            except (BlurServerError, OSError) as exc:
                logger.warning("Job from %s aborted: %s", addr[0], exc)
                self._set_status(ServerStatus.CLIENT_ERROR, str(exc))
                return None
            except Exception:
                logger.exception("Unexpected failure handling %s", addr[0])
                self._set_status(ServerStatus.CLIENT_ERROR, "unexpected failure")
                return None

        self._set_status(ServerStatus.READY)
        return record

    def serve_forever(self) -> None:
        while self._socket is not None:
            self.handle_next()

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._set_status(ServerStatus.STOPPED)


def start_server(settings: AppSettings | None = None) -> None:
    """Start a server from settings and serve until the process ends."""
    server = BlurServer(settings or get_settings())
    server.start()
    try:
        server.serve_forever()
    finally:
        server.close()

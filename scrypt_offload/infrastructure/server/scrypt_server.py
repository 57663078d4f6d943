"""Process bootstrap for the hashing service.

ScryptServer owns everything that lives for the whole process: the log sink,
the FastAPI application and the uvicorn server that listens for it. Signals
are routed to methods of this object rather than to module-level state:

- SIGHUP: reopen the log file and reload the TLS certificate chain
- SIGINT/SIGTERM: graceful shutdown, handled by uvicorn (stop accepting,
  finish open requests, then run the app lifespan which drains the pool)
"""

import asyncio
import logging
import signal

import uvicorn
from fastapi import FastAPI

from scrypt_offload.domain.services.key_derivation import IKeyDerivation
from scrypt_offload.infrastructure.config.settings import Settings
from scrypt_offload.infrastructure.logs.log_sink import LogSink
from scrypt_offload.main import create_app

logger = logging.getLogger(__name__)


class ScryptServer:
    """
    Runs the hashing service until it is told to stop.

    Usage:
        server = ScryptServer(load_settings("config.json"))
        server.run()    # blocks until SIGINT/SIGTERM or stop()
    """

    def __init__(
        self,
        settings: Settings,
        log_sink: LogSink | None = None,
        key_derivation: IKeyDerivation | None = None,
    ):
        self._settings = settings
        self._log_sink = log_sink or LogSink(settings.log_path, settings.log_level)
        self._app = create_app(settings, key_derivation)
        self._config: uvicorn.Config | None = None
        self._server: uvicorn.Server | None = None

    @property
    def app(self) -> FastAPI:
        return self._app

    @property
    def config(self) -> uvicorn.Config | None:
        return self._config

    def build_config(self) -> uvicorn.Config:
        """
        Build the uvicorn configuration.

        HTTPS is used only when both certificate files are configured and
        readable; otherwise the problem is logged and the service listens on
        plain HTTP.
        """
        ssl_options = {}
        if self._certificates_readable():
            ssl_options = {
                "ssl_certfile": str(self._settings.certificate_path),
                "ssl_keyfile": str(self._settings.certificate_key_path),
            }

        return uvicorn.Config(
            self._app,
            host=self._settings.ip,
            port=self._settings.port,
            # Logging is configured by the log sink, not by uvicorn
            log_config=None,
            access_log=False,
            **ssl_options,
        )

    def reload(self) -> None:
        """Reopen the log file and reload certificates (SIGHUP)."""
        self._log_sink.reopen()
        self.reload_certificates()

    def reload_certificates(self) -> bool:
        """
        Load the configured certificate chain into the running TLS context.

        New connections use the new certificate; open ones are unaffected.

        Returns:
            True if the certificates were reloaded
        """
        ssl_context = self._config.ssl if self._config is not None else None
        if ssl_context is None or not self._settings.tls_enabled:
            return False

        try:
            ssl_context.load_cert_chain(
                certfile=str(self._settings.certificate_path),
                keyfile=str(self._settings.certificate_key_path),
            )
        except OSError as exc:
            logger.error("Error while reading SSL certificate or key: %s", exc)
            return False

        logger.info("Reloaded SSL certificates")
        return True

    def stop(self) -> None:
        """Ask the running server to shut down gracefully."""
        if self._server is not None:
            self._server.should_exit = True

    async def serve(self) -> None:
        """Open the log, start listening and serve until stopped."""
        self._log_sink.open()
        self._config = self.build_config()
        self._server = uvicorn.Server(self._config)

        loop = asyncio.get_running_loop()
        reload_signal = getattr(signal, "SIGHUP", None)
        if reload_signal is not None:
            try:
                loop.add_signal_handler(reload_signal, self.reload)
            except (NotImplementedError, RuntimeError) as exc:
                logger.warning("SIGHUP reload unavailable: %s", exc)
                reload_signal = None

        logger.info(
            "scrypt server starting on %s://%s:%d",
            "https" if self._config.is_ssl else "http",
            self._settings.ip,
            self._settings.port,
        )
        try:
            await self._server.serve()
        finally:
            if reload_signal is not None:
                loop.remove_signal_handler(reload_signal)
            logger.info("scrypt server stopped")
            self._log_sink.close()

    def run(self) -> None:
        """Blocking entry point."""
        asyncio.run(self.serve())

    def _certificates_readable(self) -> bool:
        if not self._settings.tls_enabled:
            return False
        try:
            certificate = self._settings.certificate_path.read_bytes()
            key = self._settings.certificate_key_path.read_bytes()
        except OSError as exc:
            logger.error("Error while reading SSL certificate or key: %s", exc)
            return False
        if not certificate or not key:
            logger.error("SSL certificate or key is empty, serving plain HTTP")
            return False
        return True

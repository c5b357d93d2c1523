# trackreg/server.py
"""
HTTP server for the track registry.

Exposes the call engine as a small JSON API.

Endpoints:
    POST /call     - Run a registry call
    GET  /state    - Pause flag, admin, last id, sequence height
    GET  /journal  - Journal entries
    GET  /health   - Liveness check
"""

import json
import logging
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from .engine import Call, RegistryEngine
from .errors import UnknownOperationError

logger = logging.getLogger(__name__)


class RegistryServer:
    """
    HTTP server for the registry engine.

    Usage:
        engine = RegistryEngine.from_store("/var/lib/trackreg")
        server = RegistryServer(engine, port=8080)
        server.start()  # Blocking
    """

    def __init__(self, engine: RegistryEngine, host: str = "127.0.0.1", port: int = 8080):
        self.engine = engine
        self.host = host
        self.port = port
        self._httpd: HTTPServer = None

    def _create_handler(server_instance):
        """Create request handler with access to server instance."""

        class RequestHandler(BaseHTTPRequestHandler):
            server_ref = server_instance

            def log_message(self, format, *args):
                logger.debug(format % args)

            def _send_json(self, data: Any, status: int = 200):
                body = json.dumps(data).encode()
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def _send_error(self, message: str, status: int = 400):
                self._send_json({"error": message}, status)

            def do_GET(self):
                path = urlparse(self.path).path
                engine = self.server_ref.engine

                if path == "/health":
                    self._send_json({"status": "ok"})

                elif path == "/state":
                    self._send_json(engine.state())

                elif path == "/journal":
                    journal = engine.journal
                    entries = [e.to_dict() for e in journal.list()] if journal is not None else []
                    self._send_json({"entries": entries})

                else:
                    self._send_error("Not found", 404)

            def do_POST(self):
                if self.path != "/call":
                    self._send_error("Not found", 404)
                    return

                try:
                    content_length = int(self.headers.get("Content-Length", 0))
                    body = self.rfile.read(content_length).decode()
                    call = Call.from_dict(json.loads(body))
                except json.JSONDecodeError as e:
                    self._send_error(f"Invalid JSON: {e}")
                    return
                except (KeyError, TypeError, AttributeError) as e:
                    self._send_error(f"Invalid call: {e}")
                    return

                try:
                    result = self.server_ref.engine.execute(call)
                except UnknownOperationError as e:
                    self._send_error(str(e))
                    return
                except Exception as e:
                    logger.exception(f"Call {call.operation} failed")
                    self._send_error(str(e), 500)
                    return

                self._send_json(result.to_dict())

        return RequestHandler

    def start(self):
        """Start the HTTP server (blocking)."""
        handler = self._create_handler()
        self._httpd = HTTPServer((self.host, self.port), handler)
        # port 0 binds an ephemeral port
        self.port = self._httpd.server_address[1]
        logger.info(f"Registry server starting on {self.host}:{self.port}")
        try:
            self._httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutting down")
        finally:
            self._httpd.server_close()

    def start_background(self) -> threading.Thread:
        """Start the server in a background thread and wait until it is bound."""
        handler = self._create_handler()
        self._httpd = HTTPServer((self.host, self.port), handler)
        self.port = self._httpd.server_address[1]
        thread = threading.Thread(target=self._httpd.serve_forever)
        thread.daemon = True
        thread.start()
        logger.info(f"Registry server running on {self.host}:{self.port}")
        return thread

    def stop(self):
        """Stop a server started with start_background()."""
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"


def main():
    """Entry point for running the server directly."""
    import argparse

    parser = argparse.ArgumentParser(description="Track registry server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8080, help="Port to bind to")
    parser.add_argument("--store", default="./trackreg_store", help="Registry store directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    engine = RegistryEngine.from_store(Path(args.store))
    RegistryServer(engine, host=args.host, port=args.port).start()


if __name__ == "__main__":
    main()

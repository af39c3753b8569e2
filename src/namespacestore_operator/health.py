"""Health check endpoints for the operator."""

import threading
from typing import Any

from prometheus_client import make_wsgi_app
from werkzeug.serving import BaseWSGIServer, make_server
from werkzeug.wrappers import Response

_ready = threading.Event()


def set_ready(ready: bool) -> None:
    """Mark the operator as ready (or not) to reconcile NamespaceStores."""
    if ready:
        _ready.set()
    else:
        _ready.clear()


def is_ready() -> bool:
    return _ready.is_set()


def create_combined_wsgi_app() -> Any:
    """Create a WSGI app serving /healthz, /readyz and prometheus metrics.

    /readyz answers 503 until the operator finished its startup.
    """
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> Any:
        path = environ.get("PATH_INFO", "")

        if path == "/healthz":
            response = Response('{"status":"ok"}', mimetype="application/json", status=200)
        elif path == "/readyz":
            if is_ready():
                response = Response('{"status":"ready"}', mimetype="application/json", status=200)
            else:
                response = Response('{"status":"starting"}', mimetype="application/json", status=503)
        else:
            return metrics_app(environ, start_response)
        return response(environ, start_response)

    return combined_app


def start_server(port: int) -> BaseWSGIServer:
    """Serve the combined app from a daemon thread."""
    server = make_server("", port, create_combined_wsgi_app(), threaded=True)
    thread = threading.Thread(target=server.serve_forever, name="metrics-server", daemon=True)
    thread.start()
    return server

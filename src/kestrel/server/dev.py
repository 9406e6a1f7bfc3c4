"""Development server.

Runs a pounce ASGI server with a live kestrel :class:`~kestrel.server.app.App`.
pounce is an optional dependency (``pip install kestrel[server]``) and is
imported only when a server is started.
"""

from __future__ import annotations

from kestrel.errors import ConfigurationError


def run_dev_server(app: object, host: str, port: int, *, reload: bool = False) -> None:
    """Serve *app* on ``host:port`` until interrupted.

    Raises:
        ConfigurationError: If pounce is not installed.
    """
    try:
        from pounce.config import ServerConfig
        from pounce.server import Server
    except ImportError as exc:
        msg = "kestrel serve needs pounce: pip install 'kestrel[server]'"
        raise ConfigurationError(msg) from exc

    config = ServerConfig(host=host, port=port, workers=1, reload=reload)
    Server(config, app).run()

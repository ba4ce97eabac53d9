"""HTTP/WebSocket routers; included by server.create_app()."""

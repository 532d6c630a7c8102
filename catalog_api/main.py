"""Standalone server: the FastAPI app with the Socket.IO server mounted around it."""
import os

import socketio
import uvicorn

from catalog_api.app import app
from catalog_api.realtime import sio

asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)


def run() -> None:
    uvicorn.run(
        asgi_app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    run()

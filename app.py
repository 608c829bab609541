from contextlib import asynccontextmanager
from typing import Any

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from constants import CORS_ORIGINS
from gateway import ChatGateway
from routers.health import health_router
from routers.rooms import rooms_router
from logging_config import get_logger, setup_logging
import os

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)

cors_origins = "*" if CORS_ORIGINS.strip() == "*" else [o.strip() for o in CORS_ORIGINS.split(",") if o.strip()]

# Socket.IO carries the chat events; each handler's return value is the ack
sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=cors_origins,
    logger=False,
    engineio_logger=False,
)

gateway = ChatGateway.create(sio)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Chat server starting")
    yield
    await gateway.aclose()


app = FastAPI(lifespan=lifespan)
app.state.gateway = gateway

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins if isinstance(cors_origins, list) else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(rooms_router)

logger.info("FastAPI application initialized")


@sio.event
async def connect(sid: str, environ: dict, auth: Any = None):
    logger.info(f"New connection: {sid}")


@sio.event
async def join(sid: str, data: Any = None):
    return await gateway.join(sid, data)


@sio.on("sendMessage")
async def send_message(sid: str, data: Any = None):
    return await gateway.send_message(sid, data)


@sio.event
async def leave(sid: str, data: Any = None):
    return await gateway.leave(sid)


@sio.event
async def disconnect(sid: str, reason: Any = None):
    logger.info(f"Connection closed: {sid} ({reason})")
    await gateway.disconnect(sid)


# Socket.IO sits in front and hands everything that is not /socket.io to FastAPI
application = socketio.ASGIApp(sio, other_asgi_app=app)

"""FastAPI server hosting the chat relay."""

from datetime import datetime
from pathlib import Path as FilePath
from typing import Dict, Optional

from fastapi import FastAPI, File, HTTPException, Path, Query, UploadFile, WebSocket, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.websockets import WebSocketDisconnect

from chatrelay import __version__
from chatrelay.config import settings
from chatrelay.core.registry import ConnectionRegistry
from chatrelay.core.router import MessageRouter
from chatrelay.core.session import ChatSession, SessionLifecycle
from chatrelay.logger import logger
from chatrelay.storage.repository import MessageRepository
from .models import (
    ErrorResponse,
    HistoryResponse,
    MessageResponse,
    OnlineResponse,
    StatsResponse,
    UploadResponse,
)
from .outbound import OutboundChannel
from .uploads import UploadStore


class ChatServer:
    """HTTP and WebSocket front end for the relay core."""

    def __init__(
        self,
        db_path: Optional[str] = None,
        upload_dir: Optional[str] = None,
        static_dir: Optional[str] = None,
        history_limit: Optional[int] = None,
        outbound_queue_size: Optional[int] = None,
    ):
        self.repository = MessageRepository(db_path or settings.db_path)
        self.registry = ConnectionRegistry()
        self.router = MessageRouter(
            self.registry,
            self.repository,
            history_limit=history_limit or settings.history_limit,
            image_url_prefix=settings.image_url_prefix,
        )
        self.lifecycle = SessionLifecycle(self.registry, self.router)
        self.uploads = UploadStore(upload_dir or settings.upload_dir)
        self.static_dir = FilePath(static_dir or settings.static_dir)
        self.outbound_queue_size = outbound_queue_size or settings.outbound_queue_size
        self.sessions: Dict[str, ChatSession] = {}

        self.app = FastAPI(
            title="Chat Relay",
            description="Real-time chat relay with private messages and history",
            version=__version__,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        # Add CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Register routes
        self._register_routes()

        # Add exception handlers
        self._register_exception_handlers()

        # Static mounts go last so they never shadow the routes above
        self._mount_static()

    def _register_exception_handlers(self):
        """Register custom exception handlers."""

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request, exc):
            logger.error(f"API error: {exc}")
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(
                    error="Internal server error",
                    detail=str(exc)
                ).model_dump(mode="json")
            )

    def _mount_static(self):
        """Serve uploads and, when present, the static client."""
        prefix = settings.image_url_prefix.rstrip("/")
        self.app.mount(prefix, StaticFiles(directory=str(self.uploads.upload_dir)), name="uploads")

        if self.static_dir.is_dir():
            self.app.mount("/", StaticFiles(directory=str(self.static_dir), html=True), name="static")
            logger.info(f"Serving static client from {self.static_dir}")

    def _register_routes(self):
        """Register all routes."""

        @self.app.websocket("/ws")
        async def websocket_endpoint(
            websocket: WebSocket,
            username: Optional[str] = Query(None, description="Identity of the connecting user"),
        ):
            identity = (username or "").strip()
            if not identity:
                logger.warning("Rejecting WebSocket upgrade without a username")
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                return

            await websocket.accept()
            await self.handle_connection(websocket, identity)

        # Health check
        @self.app.get("/health")
        async def health_check():
            return {"status": "healthy", "timestamp": datetime.now().isoformat()}

        # System info
        @self.app.get("/api/v1/info")
        async def get_system_info():
            return {
                "name": "Chat Relay",
                "version": __version__,
                "description": "WebSocket chat relay with durable message history"
            }

        @self.app.post("/upload", response_model=UploadResponse)
        async def upload_image(file: UploadFile = File(..., description="Image to store")):
            """Store an uploaded image and return its generated filename."""
            if not file.filename:
                raise HTTPException(status_code=400, detail="Upload has no filename")

            data = await file.read()
            try:
                filename = self.uploads.save(file.filename, data)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

            prefix = settings.image_url_prefix.rstrip("/")
            return UploadResponse(filename=filename, url=f"{prefix}/{filename}")

        @self.app.get("/api/v1/online", response_model=OnlineResponse)
        async def list_online():
            """List identities with a live connection."""
            users = self.registry.identities()
            return OnlineResponse(users=users, total=len(users))

        @self.app.get("/api/v1/history/{user_a}/{user_b}", response_model=HistoryResponse)
        async def get_history(
            user_a: str = Path(..., description="First identity"),
            user_b: str = Path(..., description="Second identity"),
            limit: int = Query(100, ge=1, le=1000, description="Maximum number of messages"),
        ):
            """Get the private conversation between two identities."""
            messages = self.repository.history(user_a, user_b, limit)
            return HistoryResponse(
                user_a=user_a,
                user_b=user_b,
                messages=[MessageResponse(**message.model_dump()) for message in messages],
                total=len(messages),
            )

        @self.app.get("/api/v1/messages/{message_id}", response_model=MessageResponse)
        async def get_message(message_id: int = Path(..., ge=1, description="Message ID")):
            """Get one stored message."""
            message = self.repository.get_message(message_id)
            if not message:
                raise HTTPException(status_code=404, detail="Message not found")
            return MessageResponse(**message.model_dump())

        @self.app.get("/api/v1/stats", response_model=StatsResponse)
        async def get_stats():
            """Get relay statistics."""
            return StatsResponse(
                online_users=len(self.registry),
                active_sessions=sum(1 for s in self.sessions.values() if s.is_open()),
                stored_messages=self.repository.count_messages(),
                routing=self.router.get_stats(),
                sessions=[s.get_info() for s in self.sessions.values()],
            )

    async def handle_connection(self, websocket: WebSocket, identity: str):
        """Run one accepted connection until the client goes away."""
        channel = OutboundChannel(websocket, identity, maxsize=self.outbound_queue_size)
        channel.start()

        session = await self.lifecycle.open(identity, channel)
        self.sessions[session.session_id] = session

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info(f"WebSocket closed by '{identity}' (code={message.get('code')})")
                    break

                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes")
                if raw is None:
                    continue

                try:
                    await self.lifecycle.handle_event(session, raw)
                except Exception as e:
                    logger.exception(f"Error handling event from '{identity}': {e}")

        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected: '{identity}'")
        except Exception as e:
            logger.error(f"WebSocket error for '{identity}': {e}")
        finally:
            await self.lifecycle.close(session)
            await channel.stop()
            self.sessions.pop(session.session_id, None)

    async def start(self, host: str = "0.0.0.0", port: int = 3000):
        """Start the server."""
        import uvicorn

        config = uvicorn.Config(
            app=self.app,
            host=host,
            port=port,
            log_level="info"
        )
        server = uvicorn.Server(config)

        logger.info(f"Starting chat relay on http://{host}:{port}")
        logger.info(f"WebSocket endpoint at ws://{host}:{port}/ws?username=<name>")

        await server.serve()

"""WebSocket server that hosts one certificate wizard per connection."""

import asyncio
import json
import logging
import uuid
from functools import partial
from pathlib import Path

from websockets.asyncio.server import serve, ServerConnection

from .config.settings import Settings
from .conversation import WizardConversation
from .gateway.base import QuizGateway
from .render import render_certificate
from .state_machine import CertificateWizard

logger = logging.getLogger(__name__)


class WizardServer:
    """WebSocket server for the quiz → certificate wizard."""

    def __init__(self, settings: Settings, gateway: QuizGateway):
        self.settings = settings
        self.gateway = gateway
        self.active_wizards: dict[str, CertificateWizard] = {}
        self._pending_sends: set[asyncio.Task] = set()

    def create_wizard(self) -> CertificateWizard:
        renderer = partial(render_certificate, font_path=self.settings.render.font_path)
        return CertificateWizard(self.gateway, self.settings.wizard, renderer=renderer)

    def _push(self, websocket: ServerConnection, text: str) -> None:
        task = asyncio.get_running_loop().create_task(websocket.send(text))
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)

    async def handle_connection(self, websocket: ServerConnection) -> None:
        """Handle a single WebSocket connection."""
        session_id = str(uuid.uuid4())
        wizard = self.create_wizard()
        wizard.on_hint = lambda text: self._push(websocket, f"提示：{text}（输入 ok 关闭）")
        self.active_wizards[session_id] = wizard
        conversation = WizardConversation(wizard, Path(self.settings.render.output_dir))

        logger.info("[SESSION %s] Visitor connected", session_id[:8])

        try:
            await websocket.send(conversation.get_welcome_message())

            async for message in websocket:
                # Log message receipt without exposing personal data
                logger.info("[SESSION %s] Received input (%d chars)", session_id[:8], len(message))

                response = await conversation.process_input(message)
                if response:
                    await websocket.send(response)

        except Exception:
            logger.exception("[SESSION %s] Connection error", session_id[:8])
        finally:
            wizard.close()
            del self.active_wizards[session_id]
            logger.info("[SESSION %s] Disconnected", session_id[:8])

    def health_payload(self) -> bytes:
        """Health body: status, open wizards per step and demo-fallback flag."""
        steps: dict[str, int] = {}
        for wizard in self.active_wizards.values():
            key = wizard.step.name.lower()
            steps[key] = steps.get(key, 0) + 1
        return json.dumps(
            {
                "status": "ok",
                "activeWizards": len(self.active_wizards),
                "steps": steps,
                "demoFallback": self.settings.wizard.allow_demo_fallback,
            },
            separators=(",", ":"),
        ).encode()

    async def _handle_health_check(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """Answer GET /health with the wizard counts; anything else is a 404."""
        try:
            request_line = (await reader.readline()).split()
            if request_line[:2] in ([b"GET", b"/health"], [b"GET", b"/"]):
                body = self.health_payload()
                status = b"200 OK"
            else:
                body = b""
                status = b"404 Not Found"
            writer.write(
                b"HTTP/1.1 " + status + b"\r\n"
                b"Content-Type: application/json\r\n"
                b"Content-Length: " + str(len(body)).encode() + b"\r\n"
                b"Connection: close\r\n"
                b"\r\n" + body
            )
            await writer.drain()
        finally:
            writer.close()
            await writer.wait_closed()

    async def _start_health_server(self) -> asyncio.Server:
        """Start the HTTP health check server."""
        host = self.settings.server.host
        health_port = self.settings.server.health_port
        server = await asyncio.start_server(
            self._handle_health_check, host, health_port
        )
        print(f"Health check running on http://{host}:{health_port}/health")
        return server

    async def start(self) -> None:
        """Start the WebSocket server and health check endpoint."""
        host = self.settings.server.host
        port = self.settings.server.port

        print("=" * 50)
        print("ANNIVERSARY CERTIFICATE WIZARD")
        print("=" * 50)
        print(f"WebSocket server on ws://{host}:{port}")
        print(f"Backend API: {self.settings.api.base_url}")
        if self.settings.wizard.allow_demo_fallback:
            print("WARNING: demo fallback is ON; certificates may be fabricated")
        print("Waiting for visitors...")
        print("=" * 50)

        health_server = await self._start_health_server()

        try:
            async with health_server, serve(self.handle_connection, host, port) as ws_server:
                await ws_server.serve_forever()
        finally:
            await self.gateway.aclose()

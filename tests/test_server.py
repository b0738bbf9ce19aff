import asyncio
import json

from anniv.config.settings import RenderSettings, ServerSettings, Settings
from anniv.server import WizardServer
from anniv.state_machine import CertificateWizard


def _server(fake_gateway, wizard_settings, tmp_path) -> WizardServer:
    settings = Settings(
        wizard=wizard_settings,
        server=ServerSettings(host="127.0.0.1", port=0, health_port=0),
        render=RenderSettings(output_dir=str(tmp_path)),
    )
    return WizardServer(settings, fake_gateway)


def test_each_wizard_is_independent(fake_gateway, wizard_settings, tmp_path) -> None:
    server = _server(fake_gateway, wizard_settings, tmp_path)
    first, second = server.create_wizard(), server.create_wizard()

    assert isinstance(first, CertificateWizard)
    assert first is not second
    assert first.session is not second.session
    assert first.renderer is not None


def test_health_endpoint(fake_gateway, wizard_settings, tmp_path) -> None:
    server = _server(fake_gateway, wizard_settings, tmp_path)

    async def fetch(path: bytes) -> bytes:
        health = await server._start_health_server()
        port = health.sockets[0].getsockname()[1]
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"GET " + path + b" HTTP/1.1\r\nHost: localhost\r\n\r\n")
            await writer.drain()
            response = await reader.read()
            writer.close()
            await writer.wait_closed()
            return response
        finally:
            health.close()
            await health.wait_closed()

    ok = asyncio.run(fetch(b"/health"))
    assert ok.startswith(b"HTTP/1.1 200 OK")
    head, body = ok.split(b"\r\n\r\n", 1)
    assert json.loads(body) == {"status": "ok", "activeWizards": 0, "steps": {}, "demoFallback": False}
    assert f"Content-Length: {len(body)}".encode() in head

    missing = asyncio.run(fetch(b"/nope"))
    assert missing.startswith(b"HTTP/1.1 404")


def test_health_payload_counts_wizards_by_step(fake_gateway, wizard_settings, tmp_path) -> None:
    server = _server(fake_gateway, wizard_settings, tmp_path)

    async def scenario():
        for session_id in ("a", "b", "c"):
            server.active_wizards[session_id] = server.create_wizard()
        await server.active_wizards["c"].explore()
        return json.loads(server.health_payload())

    payload = asyncio.run(scenario())
    assert payload["activeWizards"] == 3
    assert payload["steps"] == {"hero": 2, "quiz": 1}

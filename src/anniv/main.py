"""Entry points for the wizard server and the development backend."""

import asyncio

import uvicorn
from dotenv import load_dotenv

from .backend import create_app
from .config.settings import Settings
from .gateway import create_gateway
from .logging_setup import setup_console_logging
from .repository import create_repository
from .server import WizardServer


def main() -> None:
    """Start the certificate wizard server."""
    # Load environment variables
    load_dotenv()
    setup_console_logging()

    # Initialize settings
    settings = Settings()

    # Create and start server
    server = WizardServer(settings=settings, gateway=create_gateway(settings))

    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        print("\nServer shutdown.")


def backend_main() -> None:
    """Start the development backend."""
    load_dotenv()
    setup_console_logging()

    settings = Settings()
    app = create_app(settings.backend, create_repository(settings))

    uvicorn.run(app, host=settings.backend.host, port=settings.backend.port, log_level="info")


if __name__ == "__main__":
    main()

import uvicorn

from website_backend.core.app_factory import create_app
from website_backend.core.config import settings

app = create_app(settings)


def run() -> None:
    """Serve the app with uvicorn on APP_HOST:APP_PORT."""
    uvicorn.run(
        app,
        host=settings.app.host,
        port=settings.app.port,
        log_config=None,
        proxy_headers=False,
    )


if __name__ == "__main__":
    run()

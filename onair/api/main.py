"""API server entry point: ``python -m onair.api.main``"""

import uvicorn

from onair.api.app import create_app
from onair.api.core.config import get_settings

app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "onair.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_config=None,
    )

from __future__ import annotations

import uvicorn

from strata.app.api.app import create_app
from strata.core.config import load_config

config = load_config()
app = create_app(config=config)


def serve() -> None:
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    serve()

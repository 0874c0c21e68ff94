import logging

from fastapi import FastAPI

from .config import load_matching_config
from .routes import include_modular_routers

logger = logging.getLogger(__name__)

# Invalid tuning fails here, before the app serves any request.
MATCHING_CONFIG = load_matching_config()
logger.info("[startup] matching config version=%s strategy=%s", MATCHING_CONFIG.version, MATCHING_CONFIG.directional_strategy.value)

app = FastAPI(title="Match Engine API")
include_modular_routers(app)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "config_version": MATCHING_CONFIG.version}

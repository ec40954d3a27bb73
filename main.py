from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from src.config import settings
from src.routes import regime_routes, segment_routes
from src.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(title="Breath regime engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include the regime selection and segment recording routes
app.include_router(regime_routes.router)
app.include_router(segment_routes.router)

logger.info(f"Max session length {settings.MAX_SESSION_MINUTES} min; stage totals {settings.stage_segment_totals}")

"""
OceanViz ARGO REST API

Fixed read-only routes over the measurement table for the map/dashboard
frontend, plus a chat route that forwards region-aware prompts to an LLM.
"""

import math
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Generator, List, Literal, Optional

import logging
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..database.connection import DatabaseError, DatabaseManager
from ..database import queries
from ..rag.llm_interface import (
    ChatMessage,
    LLMConfigurationError,
    LLMInterface,
    LLMServiceError,
    RegionContext,
    build_messages,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Measurement fields whose non-finite or implausible values are sent as zero
NORMALIZED_FIELDS = queries.SUMMARY_FIELDS

# Above any physical ocean value, below the ARGO fill value 99999
MAX_PLAUSIBLE_MAGNITUDE = 5e4


# =============================================================================
# Schemas
# =============================================================================
class ChatMessageIn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ChatMessageIn] = Field(..., min_length=1)
    lat: Optional[float] = None
    lon: Optional[float] = None
    range_deg: Optional[float] = Field(None, alias="rangeDeg")


class ChatResponse(BaseModel):
    reply: str


# =============================================================================
# JSON helpers
# =============================================================================
def normalize_value(name: str, value: Any) -> Any:
    if not isinstance(value, float):
        return value
    if name in NORMALIZED_FIELDS:
        if not math.isfinite(value) or abs(value) > MAX_PLAUSIBLE_MAGNITUDE:
            return 0.0
        return value
    return value if math.isfinite(value) else None


def normalize_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{name: normalize_value(name, value) for name, value in row.items()} for row in rows]


def _require_finite(**values: float):
    for name, value in values.items():
        if not math.isfinite(value):
            raise HTTPException(status_code=400, detail=f"{name} must be a finite number")


def _require_range(range_deg: float):
    _require_finite(rangeDeg=range_deg)
    if range_deg < 0:
        raise HTTPException(status_code=400, detail="rangeDeg must not be negative")


# =============================================================================
# Dependencies
# =============================================================================
def get_db(request: Request) -> DatabaseManager:
    return request.app.state.db


def get_session(db: DatabaseManager = Depends(get_db)) -> Generator[Session, None, None]:
    with db.session_scope() as session:
        yield session


def get_llm() -> LLMInterface:
    try:
        return LLMInterface()
    except LLMConfigurationError as e:
        logger.error(f"Chat unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))


# =============================================================================
# App
# =============================================================================
def _metric_endpoint(metric: str):
    def endpoint(session: Session = Depends(get_session)):
        try:
            return normalize_rows(queries.fetch_metric(session, metric))
        except DatabaseError as e:
            raise HTTPException(status_code=500, detail=str(e))

    endpoint.__name__ = f"get_{metric}"
    return endpoint


def create_app(database_url: Optional[str] = None) -> FastAPI:
    """Build the API; the database manager lives for the app's lifespan"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = DatabaseManager(database_url)
        try:
            try:
                db.ensure_schema()
            except DatabaseError as e:
                # Keep serving; data routes answer 500 and /health reports degraded
                logger.error(f"Database unavailable at startup: {e}")
            app.state.db = db
            yield
        finally:
            db.close()

    app = FastAPI(
        title="OceanViz ARGO API",
        description="Read-only access to ARGO float measurements and an LLM chat assistant",
        version="1.0.0",
        lifespan=lifespan,
    )

    cors_origins = os.environ.get("CORS_ORIGINS", "*").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=not (len(cors_origins) == 1 and cors_origins[0] == "*"),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "ARGO Backend API is running!"

    @app.get("/health")
    def health(db: DatabaseManager = Depends(get_db)):
        connected = db.test_connection()
        return {
            "status": "ok" if connected else "degraded",
            "database": "connected" if connected else "unavailable",
        }

    @app.get("/everything")
    def everything(session: Session = Depends(get_session)):
        try:
            return normalize_rows(queries.fetch_everything(session))
        except DatabaseError as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/latlong")
    def latlong(lat: float = Query(...), lon: float = Query(...),
                session: Session = Depends(get_session)):
        _require_finite(lat=lat, lon=lon)
        try:
            return normalize_rows(queries.fetch_by_location(session, lat, lon))
        except DatabaseError as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/profiles")
    def profiles(lat: float = Query(...), lon: float = Query(...),
                 range_deg: float = Query(..., alias="rangeDeg"),
                 session: Session = Depends(get_session)):
        _require_finite(lat=lat, lon=lon)
        _require_range(range_deg)
        try:
            return normalize_rows(queries.fetch_profiles(session, lat, lon, range_deg))
        except DatabaseError as e:
            raise HTTPException(status_code=500, detail=str(e))

    for metric in queries.METRIC_COLUMNS:
        app.add_api_route(f"/{metric}", _metric_endpoint(metric), methods=["GET"])

    @app.post("/chat", response_model=ChatResponse)
    def chat(request: ChatRequest,
             session: Session = Depends(get_session),
             llm: LLMInterface = Depends(get_llm)):
        region_values = (request.lat, request.lon, request.range_deg)
        region = None
        summary = None

        if any(v is not None for v in region_values):
            if any(v is None for v in region_values):
                raise HTTPException(status_code=400, detail="lat, lon and rangeDeg must be given together")
            _require_finite(lat=request.lat, lon=request.lon)
            _require_range(request.range_deg)
            region = RegionContext(request.lat, request.lon, request.range_deg)
            try:
                summary = queries.region_summary(session, region.lat, region.lon, region.range_deg)
            except DatabaseError as e:
                raise HTTPException(status_code=500, detail=str(e))

        messages = build_messages(
            [ChatMessage(m.role, m.content) for m in request.messages],
            region=region,
            summary=summary,
        )
        try:
            reply = llm.generate_reply(messages)
        except LLMServiceError as e:
            raise HTTPException(status_code=502, detail=str(e))

        return ChatResponse(reply=reply)

    return app


def main() -> int:
    """Run the API server with uvicorn"""
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    host = os.getenv("API_HOST", "localhost")
    port = int(os.getenv("API_PORT", "3000"))
    logger.info(f"API running at http://{host}:{port}")
    uvicorn.run("oceanviz.api.server:create_app", factory=True, host=host, port=port)
    return 0

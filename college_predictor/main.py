from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
import uvicorn
import logging
from typing import Optional
from .config import settings
from .errors import InvalidFilterError, RetrievalError
from .filters import parse_filter_request
from .models import ResultPage, TrendResponse
from .service import (
    get_filter_options,
    get_trend,
    match_colleges,
    parse_trend_request,
)
from .store import CutoffStore

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# FastAPI Application
app = FastAPI(
    title="CSAB College Predictor",
    description="Rank-based college matching over historical cutoffs",
    version="1.0.0"
)
app.state.store = None

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# Startup event
@app.on_event("startup")
async def startup_event():
    """Load cutoff data on startup"""
    try:
        app.state.store = CutoffStore.from_csv(settings.CUTOFF_DATA_PATH)
        logger.info("Data loaded successfully on startup")
    except (OSError, RetrievalError) as e:
        logger.error(f"Failed to load data on startup: {e}")

def get_store(request: Request) -> Optional[CutoffStore]:
    return request.app.state.store

@app.exception_handler(InvalidFilterError)
async def invalid_filter_handler(request: Request, exc: InvalidFilterError):
    return JSONResponse(status_code=400, content={"message": str(exc)})

@app.exception_handler(RetrievalError)
async def retrieval_error_handler(request: Request, exc: RetrievalError):
    logger.error(f"Retrieval failed for {request.url.path} ({dict(request.query_params)}): {exc}")
    return JSONResponse(status_code=500, content={"message": "Error fetching college data."})

@app.get("/", response_class=PlainTextResponse)
async def read_root():
    return "College Predictor API is running!"

@app.get("/api/colleges", response_model=ResultPage)
def colleges(request: Request, store: Optional[CutoffStore] = Depends(get_store)):
    """
    Match colleges for a rank and category filters

    Query parameters: rank, seatType (required), year, round, quota, gender,
    institute, program, page, limit, fetchAll

    Returns:
        ResultPage with results, totalCount, currentPage, totalPages
    """
    filters = parse_filter_request(request.query_params)
    return match_colleges(filters, store)

@app.get("/api/options")
def options(types: str = "", store: Optional[CutoffStore] = Depends(get_store)):
    """Distinct values for dropdowns, e.g. ?types=years,rounds,seatTypes"""
    requested = [t for t in types.split(",") if t.strip()]
    return get_filter_options(requested, store)

@app.get("/api/trends", response_model=TrendResponse)
def trends(request: Request, store: Optional[CutoffStore] = Depends(get_store)):
    """Closing/opening rank history of a single offer across years"""
    trend_request = parse_trend_request(request.query_params)
    return get_trend(trend_request, store)

# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    uvicorn.run(
        "college_predictor.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True
    )

from fastapi import FastAPI, Request
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from db.database import create_db_and_tables
from routers.slots import router as slots_router
from core.logging import bind_request_context, clear_request_context, configure_logging
from contextlib import asynccontextmanager


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    yield


app = FastAPI(
    title="Shelf Inventory API",
    description="API for tracking stock on the shelf grid and relocating whole slots",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_context(request: Request, call_next):
    clear_request_context()
    bind_request_context(method=request.method, path=request.url.path)
    return await call_next(request)


# Shelf slots, stock changes and relocations
app.include_router(slots_router, prefix="/slots", tags=["slots"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)

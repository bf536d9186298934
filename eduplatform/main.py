from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
from contextlib import asynccontextmanager
from fastapi import Request
from fastapi.responses import JSONResponse
import logging

from eduplatform.database import engine, Base
from eduplatform.config import Config
from eduplatform.exceptions import PlatformException
from eduplatform.models import user, catalog, enrollment, assignment, timetable, forum, document # Import all models here
from eduplatform.routes import timetable as timetable_routes, student, forum as forum_routes, documents, questions, storage

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Init DB
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield

app = FastAPI(title="Education Platform Backend", lifespan=lifespan)

origins = [
    Config.FRONTEND_URL,
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

def _with_cors(request: Request, response: JSONResponse) -> JSONResponse:
    origin = request.headers.get("origin")
    if origin in origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
    return response

@app.exception_handler(PlatformException)
async def platform_exception_handler(request: Request, exc: PlatformException):
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# Global Exception Handler to ensure CORS headers are present even on 500 errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global Exception: {exc}", exc_info=True)
    response = JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error", "message": str(exc)},
    )
    return _with_cors(request, response)

# 1. Proxy & Session Middleware
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.add_middleware(
    SessionMiddleware,
    secret_key=Config.SECRET_KEY,
    max_age=3600*24 * 7, # 7 Days
    https_only=Config.ENV == "PRODUCTION",
    same_site="lax",
    domain=Config.SESSION_COOKIE_DOMAIN
)

# 2. CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True, # Allow Cookies
    allow_methods=["*"],
    allow_headers=["*"],
)

# 3. Routes
app.include_router(timetable_routes.router, prefix="/api/timetable", tags=["Timetable"])
app.include_router(student.router, prefix="/api/student", tags=["Student"])
app.include_router(student.catalog_router) # Prefix defined in router
app.include_router(forum_routes.router, prefix="/api/forum", tags=["Forum"])
app.include_router(documents.router, prefix="/api/documents", tags=["Documents"])
app.include_router(documents.jobs_router, prefix="/api/jobs", tags=["Jobs"])
app.include_router(questions.router, prefix="/api/questions", tags=["Questions"])
app.include_router(storage.router, prefix="/api/storage", tags=["Storage"])

@app.get("/")
def root():
    return {"message": "Education Platform Backend Online"}

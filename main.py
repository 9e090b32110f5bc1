# local imports
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from dotenv import load_dotenv
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# external imports
from api import auth, chat, history, report, scan, verify
from config.settings import DEFAULT_JWT_SECRET, Settings, get_settings
from db.database import init_db
from services.errors import PersistenceError, UnknownUser

load_dotenv()

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


def warn_about_settings(settings: Settings):
    if not settings.google_api_key:
        logger.warning("GOOGLE_API_KEY not set; Gemini attempts will fail and verification relies on the fallback model")
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET not set; tokens are signed with the built-in development key")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables
    init_db()
    warn_about_settings(settings)
    yield


app = FastAPI(
    title="DrugVerify API",
    description="""
    **DrugVerify** helps clinic staff check whether a drug is authentic before it is dispensed.

    ## Features

    * **Multi-source lookups** - Internal NDC dataset, OpenFDA and DailyMed
    * **Model fallback chain** - Gemini first, an OpenAI-compatible model if Gemini cannot answer
    * **Fail-safe verdicts** - Anything that cannot be verified is reported as suspect
    * **Scan history** - Every verification is logged per user for audit
    * **Regulator reports** - Flagged scans can be emailed to the anti-counterfeit taskforce

    ## How It Works

    1. Sign up and log in to get a bearer token
    2. Submit a drug name, NDC, GTIN, NAFDAC number or barcode (or photograph the barcode)
    3. Receive a Verified / Suspect verdict with reasoning and the sources consulted
    """,
    version="1.0.0",
    contact={
        "name": "DrugVerify Team",
    },
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,  # Must be False when allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(UnknownUser)
async def unknown_user_handler(request: Request, exc: UnknownUser):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


app.include_router(auth.router)
app.include_router(verify.router)
app.include_router(history.router)
app.include_router(chat.router)
app.include_router(scan.router)
app.include_router(report.router)


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "drugverify"}

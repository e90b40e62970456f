from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .core.errors import ExecutionError
from .logging import setup_logging
from .services.job_service import JobService
from .settings import load_settings

logger = structlog.get_logger(__name__)

app = FastAPI(title="coderunner")
# DEV: open CORS. PROD should whitelist the editor's origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_service() -> JobService:
    s = load_settings()
    setup_logging(s.log_level, s.log_json)
    return JobService(settings=s)


# --------- Schemas ---------
class ExecuteReq(BaseModel):
    language: str = "python"
    code: Optional[str] = None


class ExecuteRes(BaseModel):
    output: str


class LanguageInfo(BaseModel):
    id: str
    aliases: List[str]
    image: str


# --------- Errors ---------
@app.exception_handler(ExecutionError)
async def execution_error_handler(request: Request, exc: ExecutionError):
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# --------- Endpoints ---------
@app.get("/api/health")
def health():
    return {"status": "Server is running"}


@app.get("/api/languages", response_model=List[LanguageInfo])
def languages(svc: JobService = Depends(get_service)):
    return [
        LanguageInfo(id=p.id, aliases=list(p.aliases), image=p.image)
        for p in svc.registry.profiles()
    ]


@app.post("/api/execute", response_model=ExecuteRes)
async def execute(req: ExecuteReq, svc: JobService = Depends(get_service)):
    if not req.code:
        return JSONResponse(status_code=400, content={"error": "Code is required."})
    logger.info("execute_requested", language=req.language)
    output = await svc.execute(req.language, req.code)
    return ExecuteRes(output=output)

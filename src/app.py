# ============================================================
# Resume Inference Gateway - FastAPI App
# ------------------------------------------------------------
# Thin HTTP surface over the InferenceGateway:
#   - blocking routes return the recovered JSON document
#   - /stream routes relay StreamingChunks as server-sent events
#   - admin routes refresh / inspect / probe the model config
# ============================================================

import json
from dataclasses import asdict
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

# --- Local imports ---
from src.settings import settings
from src.gateway import (
    FallbackExhaustedError,
    InferenceGateway,
    ModelFileInput,
    ModelResponse,
    Provider,
    ProviderError,
    SettingsConfigSource,
    StreamingChunk,
)
from src.gateway.logs import configure_logging, get_logger
from src.gateway.recovery import parse_json

configure_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


# ------------------------------------------------------------
# 🔧 Gateway wiring
# ------------------------------------------------------------
@lru_cache(maxsize=1)
def get_gateway() -> InferenceGateway:
    return InferenceGateway(SettingsConfigSource(settings))


# ------------------------------------------------------------
# 🚀 FastAPI init
# ------------------------------------------------------------
app = FastAPI(title="Resume Inference Gateway", version="0.3")


# ------------------------------------------------------------
# 📦 Pydantic models
# ------------------------------------------------------------
class FilePayload(BaseModel):
    filename: str
    file_data: str
    mime_type: Optional[str] = None

    def to_input(self) -> ModelFileInput:
        return ModelFileInput(filename=self.filename, data=self.file_data, mime_type=self.mime_type)


class AnalyzeRequest(BaseModel):
    file: FilePayload


class ImproveRequest(BaseModel):
    file: FilePayload
    target_role: str
    target_industry: str
    custom_prompt: Optional[str] = None


class TailorRequest(BaseModel):
    current_resume: Any
    job_description: str
    include_cover_letter: bool = False
    company_name: Optional[str] = None
    job_title: Optional[str] = None


class ExtractJobRequest(BaseModel):
    job_url: str
    force_openai: bool = True


class ResultPayload(BaseModel):
    result: Any
    meta: Dict[str, Any]


# ------------------------------------------------------------
# 🧰 Helpers
# ------------------------------------------------------------
def _payload(resp: ModelResponse) -> ResultPayload:
    usage = resp.usage
    return ResultPayload(
        result=parse_json(resp.content),
        meta={
            "provider": resp.provider,
            "used_fallback": resp.used_fallback,
            "usage": asdict(usage) if usage else None,
        },
    )


async def _run(coro) -> ResultPayload:
    try:
        return _payload(await coro)
    except (FallbackExhaustedError, ProviderError) as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception("Gateway request failed")
        raise HTTPException(status_code=500, detail=str(e))


async def _sse(chunks: AsyncIterator[StreamingChunk]) -> AsyncIterator[str]:
    async for chunk in chunks:
        yield f"data: {json.dumps(chunk.to_dict(), ensure_ascii=False)}\n\n"


def _stream(chunks: AsyncIterator[StreamingChunk]) -> StreamingResponse:
    return StreamingResponse(_sse(chunks), media_type="text/event-stream")


# ------------------------------------------------------------
# 📄 Resume routes
# ------------------------------------------------------------
@app.post("/analyze", response_model=ResultPayload)
async def analyze(req: AnalyzeRequest, gateway: InferenceGateway = Depends(get_gateway)):
    return await _run(gateway.analyze(req.file.to_input()))


@app.post("/analyze/stream")
def analyze_stream(req: AnalyzeRequest, gateway: InferenceGateway = Depends(get_gateway)):
    return _stream(gateway.analyze_stream(req.file.to_input()))


@app.post("/improve", response_model=ResultPayload)
async def improve(req: ImproveRequest, gateway: InferenceGateway = Depends(get_gateway)):
    return await _run(gateway.improve(req.target_role, req.target_industry, req.custom_prompt, req.file.to_input()))


@app.post("/improve/stream")
def improve_stream(req: ImproveRequest, gateway: InferenceGateway = Depends(get_gateway)):
    return _stream(
        gateway.improve_stream(req.file.to_input(), req.target_role, req.target_industry, req.custom_prompt)
    )


@app.post("/tailor", response_model=ResultPayload)
async def tailor(req: TailorRequest, gateway: InferenceGateway = Depends(get_gateway)):
    return await _run(
        gateway.tailor(
            req.current_resume,
            req.job_description,
            include_cover_letter=req.include_cover_letter,
            company_name=req.company_name,
            job_title=req.job_title,
        )
    )


@app.post("/extract-job", response_model=ResultPayload)
async def extract_job(req: ExtractJobRequest, gateway: InferenceGateway = Depends(get_gateway)):
    force = Provider.OPENAI if req.force_openai else None
    return await _run(gateway.extract_job_info(req.job_url, force_provider=force))


# ------------------------------------------------------------
# 🛠 Admin routes
# ------------------------------------------------------------
@app.get("/admin/config")
def admin_config(gateway: InferenceGateway = Depends(get_gateway)):
    return {name: cfg.to_dict() for name, cfg in gateway.current_config().items()}


@app.post("/admin/refresh-config")
def admin_refresh_config(gateway: InferenceGateway = Depends(get_gateway)):
    gateway.refresh_config()
    return {"ok": True}


@app.get("/admin/test-fallback")
async def admin_test_fallback(gateway: InferenceGateway = Depends(get_gateway)) -> Dict[str, bool]:
    return await gateway.probe()


# ------------------------------------------------------------
# 🧭 Health checks
# ------------------------------------------------------------
@app.get("/healthz")
def healthz():
    return {
        "ok": True,
        "env": settings.ENV,
        "debug": settings.DEBUG,
        "app": settings.app_name,
    }


@app.get("/health")
def health():
    return {"status": "ok", "env": settings.ENV}


@app.get("/")
def hello():
    return {"message": "Resume inference gateway running."}

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from secondbrain.core.exceptions import DomainError, ValidationError
from secondbrain.core.models import ChatResult, IngestResult, ItemPreview, RouteResult, SearchHit
from secondbrain.core.settings import get_settings
from secondbrain.llm import EmbeddingsProvider, LLMClient, ReplicateLLMClient
from secondbrain.logging import setup_logging
from secondbrain.rag import Retriever, VectorIndex
from secondbrain.usecases import Chat, IngestText, ListNotes, RouteInput, Search

MAX_K = 50

logger = logging.getLogger("api")


def clamp_k(k: int) -> int:
    return max(1, min(k, MAX_K))


# ---------------------------------------------------------------------------
# Dependency factories: one long-lived client per process


@lru_cache
def get_index() -> VectorIndex:
    return VectorIndex(get_settings())


@lru_cache
def get_llm_client() -> LLMClient:
    return ReplicateLLMClient(get_settings())


@lru_cache
def get_embeddings_provider() -> EmbeddingsProvider:
    return EmbeddingsProvider(get_settings())


def ingest_text_uc(
    index: VectorIndex = Depends(get_index),
    emb: EmbeddingsProvider = Depends(get_embeddings_provider),
) -> IngestText:
    return IngestText(emb, index, get_settings())


def search_uc(
    index: VectorIndex = Depends(get_index),
    emb: EmbeddingsProvider = Depends(get_embeddings_provider),
) -> Search:
    return Search(emb, index, get_settings())


def chat_uc(
    index: VectorIndex = Depends(get_index),
    llm: LLMClient = Depends(get_llm_client),
    emb: EmbeddingsProvider = Depends(get_embeddings_provider),
) -> Chat:
    return Chat(llm, Retriever(emb, index), get_settings())


def route_uc(
    llm: LLMClient = Depends(get_llm_client),
    ingest: IngestText = Depends(ingest_text_uc),
    chat: Chat = Depends(chat_uc),
) -> RouteInput:
    return RouteInput(llm, ingest, chat)


def list_notes_uc(index: VectorIndex = Depends(get_index)) -> ListNotes:
    return ListNotes(index)


# ---------------------------------------------------------------------------
# Pydantic schemas


class IngestRequest(BaseModel):
    text: str = ""
    title: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ChatRequest(BaseModel):
    query: str = ""
    k: int = 12
    mode: Literal["answer", "notes"] = "answer"

    @field_validator("k")
    @classmethod
    def clamp_top_k(cls, v: int) -> int:
        return clamp_k(v)


class RouteRequest(BaseModel):
    text: str = ""
    k: int = 12

    @field_validator("k")
    @classmethod
    def clamp_top_k(cls, v: int) -> int:
        return clamp_k(v)


# ---------------------------------------------------------------------------
# FastAPI application


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logging()
    settings = get_settings()
    logger.info(
        "boot",
        extra={
            "milvus": settings.milvus_uri,
            "collection": settings.collection_name,
            "replicate_token": "set" if settings.replicate_api_token else "missing",
        },
    )
    get_index().ensure_collection()
    yield


app = FastAPI(title="SecondBrain API", lifespan=lifespan)
api = APIRouter(prefix="/v1")


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": {"code": "bad_request", "message": str(exc)}},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Same envelope as domain validation failures.
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "bad_request",
                "message": "invalid request",
                "detail": jsonable_encoder(exc.errors()),
            }
        },
    )


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.error("request_failed", extra={"path": request.url.path, "detail": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": "internal_error", "message": "request failed", "detail": str(exc)}},
    )


# Routes ---------------------------------------------------------------------


@api.get("/health")
def health() -> Dict[str, bool]:
    return {"ok": True}


@api.get("/vd-check")
def vd_check(index: VectorIndex = Depends(get_index)) -> Dict[str, Any]:
    return {"milvus": "up", "collections": index.list_collections()}


@api.get("/debug/embed")
async def debug_embed(emb: EmbeddingsProvider = Depends(get_embeddings_provider)) -> Dict[str, Any]:
    [vector] = await emb.embed_texts(["ping"])
    return {"ok": True, "dims": len(vector)}


@api.post("/nodes")
async def ingest_note(req: IngestRequest, uc: IngestText = Depends(ingest_text_uc)) -> IngestResult:
    return await uc(req.text, title=req.title, metadata=req.metadata)


@api.get("/nodes")
async def list_notes(
    limit: int = 20,
    offset: int = 0,
    uc: ListNotes = Depends(list_notes_uc),
) -> List[ItemPreview]:
    return await uc(limit=limit, offset=offset)


@api.get("/search")
async def search(q: str = "", k: int = 5, uc: Search = Depends(search_uc)) -> List[SearchHit]:
    return await uc(q, clamp_k(k))


@api.post("/chat")
async def chat(req: ChatRequest, uc: Chat = Depends(chat_uc)) -> ChatResult:
    return await uc(req.query, k=req.k, mode=req.mode)


@api.post("/route")
async def route(req: RouteRequest, uc: RouteInput = Depends(route_uc)) -> RouteResult:
    return await uc(req.text, k=req.k)


app.include_router(api)


__all__ = ["app"]

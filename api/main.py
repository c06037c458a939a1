"""FastAPI REST API for markup-compressor."""

from __future__ import annotations

import hashlib
import json
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Literal

import redis.asyncio as aioredis
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from markup_compressor import (
    CompressionResult,
    CompressorError,
    HtmlOptions,
    XmlOptions,
    compress,
    compress_with_stats,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Redis Cache
# ---------------------------------------------------------------------------

redis_client: aioredis.Redis | None = None

# Cache TTL in seconds (default: 1 hour)
CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))

# Redis connection URL
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379")


def _generate_cache_key(prefix: str, data: dict) -> str:
    """Generate a cache key from request data."""
    # Sort dict keys for consistent hashing
    sorted_data = json.dumps(data, sort_keys=True)
    hash_value = hashlib.sha256(sorted_data.encode()).hexdigest()[:16]
    return f"{prefix}:{hash_value}"


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------


class CompressionSettings(BaseModel):
    """Compression options shared by all endpoints."""

    type: Literal["html", "xml"] = Field(default="html", description="Document type")
    remove_comments: bool = Field(default=True, description="Remove comments")
    remove_multi_spaces: bool = Field(default=True, description="Collapse whitespace runs (HTML)")
    remove_intertag_spaces: bool | None = Field(
        default=None,
        description="Remove whitespace between tags (default: off for HTML, on for XML)",
    )
    remove_quotes: bool = Field(default=False, description="Remove unneeded attribute quotes (HTML)")
    compress_js: bool = Field(default=False, description="Minify <script> bodies (HTML)")
    compress_css: bool = Field(default=False, description="Minify <style> bodies (HTML)")
    remove_jsp_comments: bool = Field(default=True, description="Remove <%-- --%> comments (HTML)")
    preserve_struts_comments: bool = Field(
        default=False, description="Keep comments around <html:form> tags (HTML)"
    )
    line_break: int = Field(default=-1, ge=-1, description="Break minified code after this column")
    no_munge: bool = Field(default=False, description="Minify only, do not obfuscate")
    preserve_semi: bool = Field(default=False, description="Preserve all semicolons")
    disable_optimizations: bool = Field(default=False, description="Disable micro optimizations")


class CompressRequest(CompressionSettings):
    """Request body for compression endpoints."""

    text: str = Field(..., description="Document to compress")

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "text": "<html>\n  <body>   <p>Hi   there</p>\n  </body>\n</html>",
                "type": "html",
                "remove_intertag_spaces": True,
            }
        ]
    }}


class CompressResponse(BaseModel):
    """Response body for the /compress endpoint."""

    text: str = Field(..., description="Compressed document")


class PreservedBlockResponse(BaseModel):
    """A protected block as it appears in the compressed output."""

    kind: str
    index: int
    text: str


class CompressStatsResponse(BaseModel):
    """Response body for the /compress/stats endpoint."""

    text: str = Field(..., description="Compressed document")
    original_length: int = Field(..., description="Original document length")
    compressed_length: int = Field(..., description="Compressed document length")
    ratio: float = Field(..., description="Compression ratio (0.0-1.0)")
    savings_pct: float = Field(..., description="Percentage of characters saved")
    type: str = Field(..., description="Document type used")
    preserved_blocks: list[PreservedBlockResponse] = Field(
        default_factory=list, description="Blocks kept out of whitespace compression"
    )
    extracted: dict[str, int] = Field(default_factory=dict, description="Blocks extracted per kind")
    restored: dict[str, int] = Field(default_factory=dict, description="Blocks restored per kind")


class BatchItem(BaseModel):
    """A single item in a batch compression request."""

    id: str = Field(..., description="Unique identifier for this item")
    text: str = Field(..., description="Document to compress")


class BatchRequest(CompressionSettings):
    """Request body for batch compression."""

    items: list[BatchItem] = Field(..., description="List of documents to compress")


class BatchItemResponse(BaseModel):
    """A single result in a batch compression response."""

    id: str
    text: str
    original_length: int
    compressed_length: int
    ratio: float
    savings_pct: float


class BatchResponse(BaseModel):
    """Response body for batch compression."""

    items: list[BatchItemResponse]
    total_original_length: int
    total_compressed_length: int
    overall_ratio: float
    overall_savings_pct: float


class HealthResponse(BaseModel):
    """Response body for health check."""

    status: str = "ok"
    version: str
    cache_enabled: bool = False
    redis_connected: bool = False


class CacheStatsResponse(BaseModel):
    """Response body for cache statistics."""

    enabled: bool
    connected: bool
    ttl_seconds: int
    redis_url: str
    keys_count: int | None = None
    memory_used: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_options(req: CompressionSettings) -> HtmlOptions | XmlOptions:
    """Turn request settings into compressor options for the requested type."""
    if req.type == "xml":
        return XmlOptions(
            remove_comments=req.remove_comments,
            remove_intertag_spaces=(
                True if req.remove_intertag_spaces is None else req.remove_intertag_spaces
            ),
        )
    return HtmlOptions(
        remove_comments=req.remove_comments,
        remove_multi_spaces=req.remove_multi_spaces,
        remove_intertag_spaces=bool(req.remove_intertag_spaces),
        remove_quotes=req.remove_quotes,
        compress_js=req.compress_js,
        compress_css=req.compress_css,
        remove_jsp_comments=req.remove_jsp_comments,
        preserve_struts_comments=req.preserve_struts_comments,
        js_line_break=req.line_break,
        css_line_break=req.line_break,
        js_no_munge=req.no_munge,
        js_preserve_semi=req.preserve_semi,
        js_disable_optimizations=req.disable_optimizations,
    )


def _result_to_stats_response(result: CompressionResult) -> CompressStatsResponse:
    """Convert a CompressionResult to the API response model."""
    return CompressStatsResponse(
        text=result.text,
        original_length=result.original_length,
        compressed_length=result.compressed_length,
        ratio=result.ratio,
        savings_pct=result.savings_pct,
        type=result.dialect,
        preserved_blocks=[
            PreservedBlockResponse(kind=block.kind, index=block.index, text=block.text)
            for block in result.preserved_blocks
        ],
        extracted=dict(result.extracted),
        restored=dict(result.restored),
    )


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan - setup Redis connection."""
    global redis_client
    try:
        redis_client = await aioredis.from_url(
            REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        await redis_client.ping()
        logger.info("Connected to Redis at %s", REDIS_URL)
    except Exception as e:
        logger.warning("Redis unavailable: %s. Caching disabled.", e)
        redis_client = None

    yield

    if redis_client:
        await redis_client.close()


app = FastAPI(
    title="Markup Compressor API",
    description=(
        "REST API for minifying HTML, JSP and XML documents. Comments and "
        "redundant whitespace are removed while <pre>, <textarea>, <script>, "
        "<style> and template blocks are kept verbatim or minified on request."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Check API health, version, and cache status."""
    redis_connected = False
    if redis_client:
        try:
            await redis_client.ping()
            redis_connected = True
        except aioredis.RedisError as e:
            logger.warning("Redis ping failed: %s", e)

    return HealthResponse(
        status="ok",
        version="0.1.0",
        cache_enabled=redis_client is not None,
        redis_connected=redis_connected,
    )


@app.get("/cache/stats", response_model=CacheStatsResponse, tags=["Cache"])
async def cache_stats() -> CacheStatsResponse:
    """Get cache statistics and Redis connection info."""
    keys_count = None
    memory_used = None
    connected = False

    if redis_client:
        try:
            await redis_client.ping()
            connected = True
            # Get number of keys matching our patterns
            keys_count = 0
            for pattern in ["compress:*", "compress_stats:*"]:
                keys_count += len(await redis_client.keys(pattern))

            info = await redis_client.info("memory")
            memory_used = info.get("used_memory_human", "unknown")
        except aioredis.RedisError as e:
            logger.warning("Could not read cache stats: %s", e)

    return CacheStatsResponse(
        enabled=redis_client is not None,
        connected=connected,
        ttl_seconds=CACHE_TTL,
        redis_url=REDIS_URL.split("@")[-1] if "@" in REDIS_URL else REDIS_URL,
        keys_count=keys_count,
        memory_used=memory_used,
    )


@app.post("/compress", response_model=CompressResponse, tags=["Compression"])
async def compress_text(req: CompressRequest) -> CompressResponse:
    """Compress a document.

    Results are cached in Redis for improved performance.
    """
    try:
        cache_key = _generate_cache_key("compress", req.model_dump())

        if redis_client:
            cached = await redis_client.get(cache_key)
            if cached is not None:
                return CompressResponse(text=cached)

        result = compress(req.text, dialect=req.type, options=_build_options(req))

        if redis_client:
            await redis_client.setex(cache_key, CACHE_TTL, result)

        return CompressResponse(text=result)
    except (CompressorError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@app.post("/compress/stats", response_model=CompressStatsResponse, tags=["Compression"])
async def compress_text_with_stats(req: CompressRequest) -> CompressStatsResponse:
    """Compress a document and return detailed compression statistics.

    Results are cached in Redis for improved performance.
    """
    try:
        cache_key = _generate_cache_key("compress_stats", req.model_dump())

        if redis_client:
            cached = await redis_client.get(cache_key)
            if cached:
                return CompressStatsResponse(**json.loads(cached))

        result = compress_with_stats(req.text, dialect=req.type, options=_build_options(req))
        response = _result_to_stats_response(result)

        if redis_client:
            await redis_client.setex(cache_key, CACHE_TTL, response.model_dump_json())

        return response
    except (CompressorError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@app.post("/compress/batch", response_model=BatchResponse, tags=["Compression"])
async def compress_batch(req: BatchRequest) -> BatchResponse:
    """Compress multiple documents in a single request.

    Each item is compressed independently with the same settings.
    Returns per-item results and aggregate statistics.
    """
    try:
        options = _build_options(req)
        items: list[BatchItemResponse] = []
        total_orig = 0
        total_comp = 0

        for item in req.items:
            result = compress_with_stats(item.text, dialect=req.type, options=options)
            items.append(BatchItemResponse(
                id=item.id,
                text=result.text,
                original_length=result.original_length,
                compressed_length=result.compressed_length,
                ratio=result.ratio,
                savings_pct=result.savings_pct,
            ))
            total_orig += result.original_length
            total_comp += result.compressed_length

        overall_ratio = total_comp / total_orig if total_orig > 0 else 1.0
        return BatchResponse(
            items=items,
            total_original_length=total_orig,
            total_compressed_length=total_comp,
            overall_ratio=overall_ratio,
            overall_savings_pct=(1.0 - overall_ratio) * 100,
        )
    except (CompressorError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

"""Rewrite endpoints - rewrite, batch rewrite, analyze, validate."""

from fastapi import APIRouter, Body, Depends
from fastapi.concurrency import run_in_threadpool

from api.dependencies import get_rewrite_service
from services import RewriteService
from services.models import (
    AnalyzeRequest,
    AnalyzeResponse,
    BatchRewriteRequest,
    BatchRewriteResponse,
    RewriteRequest,
    RewriteResult,
    SectionRewriteResult,
    ValidateRequest,
    ValidateResponse,
)

router = APIRouter()


@router.post("/rewrite", response_model=RewriteResult | SectionRewriteResult)
async def rewrite(
    body: RewriteRequest = Body(...),
    svc: RewriteService = Depends(get_rewrite_service),
):
    """Rewrite a bullet, summary or section selected by ``type``.

    Exhausted rewrites return 200 with ``status="exhausted"`` and the
    critical validation items attached.
    """
    return await run_in_threadpool(svc.rewrite, body)


@router.post("/rewrite/bullets", response_model=BatchRewriteResponse)
async def rewrite_bullets(
    body: BatchRewriteRequest,
    svc: RewriteService = Depends(get_rewrite_service),
):
    """Rewrite independent bullets concurrently; per-bullet failures are reported inline."""
    items = await run_in_threadpool(
        svc.rewrite_bullets_parallel,
        body.bullets,
        target_role=body.target_role,
        layer1=body.layer1,
        max_concurrency=body.max_concurrency,
        evidence_scope=body.evidence_scope,
        allow_resume_enrichment=body.allow_resume_enrichment,
    )
    return BatchRewriteResponse(results=items)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    body: AnalyzeRequest,
    svc: RewriteService = Depends(get_rewrite_service),
):
    """Diagnose text and return the rewrite plan without generating anything."""
    return svc.analyze(body)


@router.post("/validate", response_model=ValidateResponse)
async def validate(
    body: ValidateRequest,
    svc: RewriteService = Depends(get_rewrite_service),
):
    """Validate a supplied rewrite against evidence built from the request."""
    return svc.validate(body)

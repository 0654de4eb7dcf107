"""HTTP route handlers for the slide deck API."""

from __future__ import annotations

from typing import Any, Dict, Type

import orjson
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from casedeck.config import Settings, get_settings
from casedeck.slides import analyzer
from casedeck.slides.service import SlidePipeline, get_pipeline
from casedeck.slides.validator import deck_stats

from .schemas import (
    CitationDetailsRequestModel,
    CitationRelatedRequestModel,
    CitationSearchRequestModel,
    GenerateRequestModel,
    RefineRequestModel,
    StatsRequestModel,
    TextRequestModel,
    ValidateRequestModel,
    analysis_payload,
    profile_payload,
)

router = APIRouter()


async def _load_request_model(
    http_request: Request, model_cls: Type[BaseModel], settings: Settings
) -> BaseModel:
    header_length = http_request.headers.get("content-length")
    if header_length:
        try:
            content_length = int(header_length)
        except ValueError:
            content_length = None
        if content_length is not None and content_length > settings.max_payload_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail={
                    "error": "payload_too_large",
                    "limit_bytes": settings.max_payload_bytes,
                },
            )

    body_bytes = await http_request.body()
    if body_bytes and len(body_bytes) > settings.max_payload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "error": "payload_too_large",
                "limit_bytes": settings.max_payload_bytes,
            },
        )

    if not body_bytes:
        data: Dict[str, Any] = {}
    else:
        try:
            data = orjson.loads(body_bytes)
        except orjson.JSONDecodeError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "invalid_json", "details": str(exc)},
            ) from exc

    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


def _loader(model_cls: Type[BaseModel]):
    async def load(http_request: Request) -> BaseModel:
        return await _load_request_model(http_request, model_cls, get_settings())

    return load


load_text_request = _loader(TextRequestModel)
load_generate_request = _loader(GenerateRequestModel)
load_refine_request = _loader(RefineRequestModel)
load_validate_request = _loader(ValidateRequestModel)
load_stats_request = _loader(StatsRequestModel)
load_search_request = _loader(CitationSearchRequestModel)
load_details_request = _loader(CitationDetailsRequestModel)
load_related_request = _loader(CitationRelatedRequestModel)


def _unknown_template(template_type: str, pipeline: SlidePipeline) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "unknown_template",
            "details": f"Unknown template: {template_type}",
            "available": pipeline.templates.get_available_types(),
        },
    )


@router.post("/v1/analyze")
async def analyze_case(
    request: TextRequestModel = Depends(load_text_request),
    pipeline: SlidePipeline = Depends(get_pipeline),
):
    check = analyzer.validate_input(request.text, pipeline.settings)
    return JSONResponse(content=analysis_payload(check))


@router.get("/v1/templates")
async def list_templates(pipeline: SlidePipeline = Depends(get_pipeline)):
    summaries = pipeline.list_templates()
    return JSONResponse(
        content={"templates": [summary.model_dump(by_alias=True) for summary in summaries]}
    )


@router.get("/v1/templates/{template_type}")
async def get_template(
    template_type: str, pipeline: SlidePipeline = Depends(get_pipeline)
):
    template = pipeline.templates.get(template_type)
    if template is None:
        raise _unknown_template(template_type, pipeline)
    return JSONResponse(content=template.model_dump(by_alias=True))


@router.post("/v1/templates/suggest")
async def suggest_template(
    request: TextRequestModel = Depends(load_text_request),
    pipeline: SlidePipeline = Depends(get_pipeline),
):
    profile = pipeline.analyze(request.text)
    suggested = pipeline.suggest_template(profile)
    match = pipeline.templates.validate_match(suggested, profile) if suggested else None
    return JSONResponse(
        content={
            "suggested": suggested,
            "match": match.model_dump(by_alias=True) if match else None,
            "profile": profile_payload(profile),
        }
    )


@router.post("/v1/slides/generate")
async def generate_slides(
    request: GenerateRequestModel = Depends(load_generate_request),
    pipeline: SlidePipeline = Depends(get_pipeline),
):
    deck = await pipeline.generate(request.text, request.to_options())
    return JSONResponse(content=deck.to_wire())


@router.post("/v1/slides/refine")
async def refine_slides(
    request: RefineRequestModel = Depends(load_refine_request),
    pipeline: SlidePipeline = Depends(get_pipeline),
):
    deck = await pipeline.refine(request.deck, request.instructions, request.to_options())
    return JSONResponse(content=deck.to_wire())


@router.post("/v1/slides/validate")
async def validate_slides(
    request: ValidateRequestModel = Depends(load_validate_request),
    pipeline: SlidePipeline = Depends(get_pipeline),
):
    report = pipeline.validate(
        request.deck, request.input, request.desired_slide_count, request.template
    )
    return JSONResponse(content=report.model_dump(mode="json", by_alias=True))


@router.post("/v1/slides/stats")
async def slide_stats(request: StatsRequestModel = Depends(load_stats_request)):
    return JSONResponse(content=deck_stats(request.deck))


@router.delete("/v1/cache")
async def clear_cache(pipeline: SlidePipeline = Depends(get_pipeline)):
    removed = await pipeline.clear_cache()
    return JSONResponse(content={"removed": removed})


@router.post("/v1/citations/search")
async def search_citations(
    request: CitationSearchRequestModel = Depends(load_search_request),
    pipeline: SlidePipeline = Depends(get_pipeline),
):
    result = await pipeline.citations.search(request.query)
    return JSONResponse(content=result)


@router.post("/v1/citations/details")
async def citation_details(
    request: CitationDetailsRequestModel = Depends(load_details_request),
    pipeline: SlidePipeline = Depends(get_pipeline),
):
    try:
        result = await pipeline.citations.details(request.name)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": str(exc)},
        ) from exc
    return JSONResponse(content=result)


@router.post("/v1/citations/related")
async def related_citations(
    request: CitationRelatedRequestModel = Depends(load_related_request),
    pipeline: SlidePipeline = Depends(get_pipeline),
):
    result = await pipeline.citations.related(request.citation)
    return JSONResponse(content=result)

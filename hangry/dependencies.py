"""FastAPI dependencies for objects built once in the app lifespan."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from hangry.services.enrichment import EnrichmentPipeline


def get_enrichment_pipeline(request: Request) -> EnrichmentPipeline:
    """Return the process-wide pipeline stored on app.state by the lifespan."""
    pipeline = getattr(request.app.state, "enrichment_pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Enrichment pipeline is not initialised",
        )
    return pipeline

"""AI narrative routes."""

from fastapi import APIRouter, HTTPException

from sitescore.api.schemas import (
    ActionPlanRequest,
    CompareRequest,
    ExplanationResponse,
    NarrativeResponse,
    SiteNarrativeRequest,
)
from sitescore.data.narrative import (
    NarrativeUnavailable,
    compare_sites,
    generate_action_plan,
    generate_site_explanation,
)

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/explain", response_model=ExplanationResponse)
async def explain(req: SiteNarrativeRequest):
    """Explain a site's score. Falls back to a rule-based summary, never fails."""
    explanation = await generate_site_explanation(req.model_dump(exclude_none=True))
    return ExplanationResponse(explanation=explanation.text, source=explanation.source)


@router.post("/compare", response_model=NarrativeResponse)
async def compare(req: CompareRequest):
    try:
        text = await compare_sites([s.model_dump(exclude_none=True) for s in req.sites])
    except NarrativeUnavailable as e:
        raise HTTPException(status_code=503, detail=f"AI comparison unavailable: {e}")
    return NarrativeResponse(text=text)


@router.post("/action-plan", response_model=NarrativeResponse)
async def action_plan(req: ActionPlanRequest):
    try:
        text = await generate_action_plan(
            req.site.model_dump(exclude_none=True),
            budget=req.budget,
            timeline=req.timeline,
        )
    except NarrativeUnavailable as e:
        raise HTTPException(status_code=503, detail=f"AI action plan unavailable: {e}")
    return NarrativeResponse(text=text)

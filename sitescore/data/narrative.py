"""Claude API client for site explanations, comparisons and opening plans.

Explanations always return text: when the API key is missing or the call
fails, a rule-based narrative is produced from the same recommendation tiers
the scoring engine uses. Comparisons and plans have no fallback and raise
NarrativeUnavailable instead.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

import anthropic

from sitescore.config import settings
from sitescore.engine.composite import classify_recommendation, tier_min_score
from sitescore.models.site import RecommendationTier

logger = logging.getLogger(__name__)


class NarrativeUnavailable(RuntimeError):
    pass


@dataclass(frozen=True)
class SiteExplanation:
    text: str
    source: str  # "ai" | "fallback"


def _value(site: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = site.get(key)
        if value is not None and value != "":
            return value
    return default


def _number(site: Mapping[str, Any], *keys: str) -> Decimal | None:
    value = _value(site, *keys)
    if value is None:
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _location(site: Mapping[str, Any]) -> str:
    station = _value(site, "station", "mrt_station", default="Unknown location")
    zone = _value(site, "zone_label", default="")
    return f"{station} {zone}".strip()


def _score(site: Mapping[str, Any]) -> Decimal:
    return _number(site, "composite_score", "optimal_score") or Decimal("0")


def site_tier(site: Mapping[str, Any]) -> RecommendationTier:
    return classify_recommendation(_score(site), _number(site, "supply_demand_ratio"))


def _site_facts(site: Mapping[str, Any]) -> list[str]:
    ratio = _number(site, "supply_demand_ratio")
    flow = _number(site, "flow_accessibility")
    lines = [
        f"Location: {_location(site)}",
        f"Composite score: {_score(site):.1f} / 100 ({site_tier(site).value})",
        f"Reachable foot traffic: {int(flow):,} people/day" if flow is not None else "",
        f"Supply/demand ratio: {ratio:.2f} competitors per 10,000 daily flow" if ratio is not None else "",
        f"Supply/demand status: {_value(site, 'supply_demand_status', default='unknown')}",
        f"Nearby cafes: {_value(site, 'cafe_count', default=0)}, "
        f"total competitors: {_value(site, 'total_competitors', 'competitor_count', default=0)}",
        f"Bike-share docks nearby: {_value(site, 'bike_share_count', 'youbike_count', default=0)}",
        f"Distance to station: {_value(site, 'zone_start_m', 'transit_distance', default='unknown')} m "
        f"({_value(site, 'access_type', default='unknown access')})",
    ]
    rent = _number(site, "rent")
    if rent is not None:
        lines.append(f"Median monthly rent near the station: {rent:,.0f}")
    return [line for line in lines if line]


def build_site_prompt(site: Mapping[str, Any]) -> str:
    data_block = "\n".join(_site_facts(site))
    return f"""You are a commercial real estate site-selection consultant advising a specialty coffee brand. Analyse the site below.

Data:
{data_block}

Cover, in short sections:
1. Strategic value of the location in the transit network and the foot traffic it captures
2. Competitive position: differentiate or ride the cluster
3. Best store format (takeaway, specialty pour-over, work-friendly)
4. Target customers
5. Three to five concrete operating recommendations (pricing, menu, service)
6. Final verdict: a 1-10 confidence score and one decisive sentence

Be concise and practical. Two or three paragraphs per section at most."""


FALLBACK_BODIES: dict[RecommendationTier, str] = {
    RecommendationTier.STRONGLY_RECOMMENDED: (
        "**Strongly recommended**\n\n"
        "- Strong reachable foot traffic and low competitive pressure.\n"
        "- Suits a mid-to-high-end specialty cafe; move quickly to secure the space.\n"
        "- Build a membership programme early to lock in regulars.\n\n"
        "**Verdict: 9/10**"
    ),
    RecommendationTier.RECOMMENDED: (
        "**Recommended**\n\n"
        "- Good foot traffic with manageable competition.\n"
        "- Suits a neighbourhood or work-friendly cafe with a clear point of difference.\n"
        "- Focus on service quality and flexible pricing to build word of mouth.\n\n"
        "**Verdict: 7/10**"
    ),
    RecommendationTier.CONSIDER_WITH_CAUTION: (
        "**Consider with caution**\n\n"
        "- Either competition is heavy or foot traffic is thin; a clear differentiation strategy is required.\n"
        "- Do further market research and compare alternative sites.\n"
        "- If you proceed, keep costs tight and hold at least six months of working capital.\n\n"
        "**Verdict: 5/10**"
    ),
    RecommendationTier.NOT_RECOMMENDED: (
        "**Not recommended**\n\n"
        "- The combination of foot traffic, competition and access does not support a new cafe here.\n"
        "- Look for a better location.\n\n"
        "**Verdict: 3/10**"
    ),
}


def fallback_explanation(site: Mapping[str, Any]) -> str:
    """Rule-based explanation keyed off the engine's recommendation tiers."""
    tier = site_tier(site)
    facts = "\n".join(f"- {line}" for line in _site_facts(site))
    threshold = tier_min_score(tier)
    threshold_note = (
        f"Sites in this tier score at least {threshold:.0f}."
        if threshold > 0
        else f"Sites below {tier_min_score(RecommendationTier.CONSIDER_WITH_CAUTION):.0f} land in this tier."
    )
    return (
        f"## Site summary: {_location(site)}\n\n"
        f"{facts}\n\n"
        f"{FALLBACK_BODIES[tier]}\n\n"
        f"{threshold_note}\n\n"
        "---\n*This is a rule-based summary generated without the AI model.*"
    )


async def _complete(prompt: str) -> str:
    client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    message = await client.messages.create(
        model=settings.narrative_model,
        max_tokens=settings.narrative_max_tokens,
        messages=[{"role": "user", "content": prompt}],
    )
    text = message.content[0].text if message.content else ""
    if not text.strip():
        raise NarrativeUnavailable("Model returned an empty response")
    return text


async def generate_site_explanation(site: Mapping[str, Any]) -> SiteExplanation:
    if not settings.anthropic_api_key:
        logger.debug("Anthropic API key not configured, using fallback explanation")
        return SiteExplanation(text=fallback_explanation(site), source="fallback")

    logger.info("Generating explanation for %s", _location(site))
    try:
        text = await _complete(build_site_prompt(site))
    except (anthropic.APIError, NarrativeUnavailable) as e:
        logger.warning("Claude explanation failed for %s, using fallback: %s", _location(site), e)
        return SiteExplanation(text=fallback_explanation(site), source="fallback")
    return SiteExplanation(text=text, source="ai")


async def compare_sites(sites: Sequence[Mapping[str, Any]]) -> str:
    if len(sites) < 2:
        raise ValueError("Need at least 2 sites to compare")
    if not settings.anthropic_api_key:
        raise NarrativeUnavailable("Anthropic API key not configured")

    blocks = []
    for i, site in enumerate(sites, start=1):
        facts = "\n".join(f"- {line}" for line in _site_facts(site))
        blocks.append(f"### Site {i}\n{facts}")
    prompt = f"""You are a cafe site-selection consultant. Compare these {len(sites)} candidate sites.

{chr(10).join(blocks)}

Provide:
1. Ranking with reasons
2. Core strength and main risk of each site
3. Which kind of operator each site suits
4. If only one can be chosen, which one and why

Be concise and use business analysis terms."""

    logger.info("Comparing %d sites", len(sites))
    try:
        return await _complete(prompt)
    except anthropic.APIError as e:
        logger.warning("Claude comparison failed: %s", e)
        raise NarrativeUnavailable(str(e)) from e


async def generate_action_plan(
    site: Mapping[str, Any],
    budget: int = 1_000_000,
    timeline: str = "3 months",
) -> str:
    if not settings.anthropic_api_key:
        raise NarrativeUnavailable("Anthropic API key not configured")

    facts = "\n".join(f"- {line}" for line in _site_facts(site))
    prompt = f"""You are an experienced cafe opening consultant.

Site:
{facts}

Constraints:
- Budget: {budget:,}
- Timeline: {timeline}

Write a complete opening plan:
1. Month-by-month schedule (preparation, fit-out, opening)
2. Budget split across rent, fit-out, equipment, staff, marketing and working capital
3. Main risks and how to manage them

Keep it concrete and actionable."""

    logger.info("Generating action plan for %s", _location(site))
    try:
        return await _complete(prompt)
    except anthropic.APIError as e:
        logger.warning("Claude action plan failed: %s", e)
        raise NarrativeUnavailable(str(e)) from e

from dataclasses import replace
from decimal import Decimal

from sitescore.engine.composite import (
    WEIGHTS,
    classify_recommendation,
    classify_supply_demand,
    composite_score,
    score_site,
    tier_min_score,
)
from sitescore.models.site import (
    RecommendationTier,
    SiteInput,
    SubScores,
    SupplyDemandStatus,
)


class TestWeights:
    def test_weights_sum_to_one(self):
        assert sum(WEIGHTS.values()) == Decimal("1")

    def test_weighted_sum(self):
        subs = SubScores(
            flow=Decimal("100"), supply_demand=Decimal("0"),
            bike_share=Decimal("100"), rent=Decimal("50"),
        )
        assert composite_score(subs) == Decimal("65.0")

    def test_rounded_to_one_place(self):
        subs = SubScores(
            flow=Decimal("33.3"), supply_demand=Decimal("66.7"),
            bike_share=Decimal("20.0"), rent=Decimal("85.0"),
        )
        # 13.32 + 20.01 + 4.0 + 8.5 = 45.83
        assert composite_score(subs) == Decimal("45.8")


class TestClassifyRecommendation:
    def test_strongly_recommended(self):
        assert classify_recommendation(Decimal("85"), Decimal("0.49")) == RecommendationTier.STRONGLY_RECOMMENDED

    def test_ratio_ceiling_blocks_top_tier(self):
        assert classify_recommendation(Decimal("90"), Decimal("0.5")) == RecommendationTier.RECOMMENDED

    def test_saturated_high_score_is_only_caution(self):
        """Score 95 with ratio 0.7 cannot reach tiers 1-2."""
        assert classify_recommendation(Decimal("95"), Decimal("0.7")) == RecommendationTier.CONSIDER_WITH_CAUTION

    def test_caution_needs_score_only(self):
        assert classify_recommendation(Decimal("60"), Decimal("5")) == RecommendationTier.CONSIDER_WITH_CAUTION

    def test_not_recommended(self):
        assert classify_recommendation(Decimal("59.9"), Decimal("0")) == RecommendationTier.NOT_RECOMMENDED

    def test_unknown_ratio_uses_score_only(self):
        assert classify_recommendation(Decimal("86")) == RecommendationTier.STRONGLY_RECOMMENDED
        assert classify_recommendation(Decimal("72")) == RecommendationTier.RECOMMENDED

    def test_tier_min_score(self):
        assert tier_min_score(RecommendationTier.STRONGLY_RECOMMENDED) == Decimal("85")
        assert tier_min_score(RecommendationTier.RECOMMENDED) == Decimal("70")
        assert tier_min_score(RecommendationTier.CONSIDER_WITH_CAUTION) == Decimal("60")
        assert tier_min_score(RecommendationTier.NOT_RECOMMENDED) == Decimal("0")


class TestClassifySupplyDemand:
    def test_thresholds(self):
        assert classify_supply_demand(Decimal("0.49")) == SupplyDemandStatus.UNDERSUPPLIED
        assert classify_supply_demand(Decimal("0.5")) == SupplyDemandStatus.MODERATE_COMPETITION
        assert classify_supply_demand(Decimal("0.69")) == SupplyDemandStatus.MODERATE_COMPETITION
        assert classify_supply_demand(Decimal("0.7")) == SupplyDemandStatus.NEAR_SATURATION
        assert classify_supply_demand(Decimal("1.0")) == SupplyDemandStatus.MARKET_SATURATED


class TestScoreSite:
    def test_canonical(self, canonical_site):
        result = score_site(canonical_site)
        assert result.flow_accessibility == 60000
        assert result.supply_demand_ratio == Decimal("0.50")
        assert result.sub_scores == SubScores(
            flow=Decimal("60.0"), supply_demand=Decimal("75.0"),
            bike_share=Decimal("40.0"), rent=Decimal("70.0"),
        )
        # 24 + 22.5 + 8 + 7
        assert result.composite_score == Decimal("61.5")
        assert result.recommendation_tier == RecommendationTier.CONSIDER_WITH_CAUTION
        assert result.supply_demand_status == SupplyDemandStatus.MODERATE_COMPETITION

    def test_tier_gating(self):
        """Ratio 6.0 floors supply; 65.0 is only 'consider with caution'."""
        site = SiteInput(
            daily_flow=100000,
            transit_distance=Decimal("100"),
            competitor_count=60,
            bike_share_count=5,
        )
        result = score_site(site)
        assert result.supply_demand_ratio == Decimal("6.00")
        assert result.sub_scores.flow == Decimal("100.0")
        assert result.sub_scores.supply_demand == Decimal("0.0")
        assert result.sub_scores.bike_share == Decimal("100.0")
        assert result.composite_score == Decimal("65.0")
        assert result.recommendation_tier == RecommendationTier.CONSIDER_WITH_CAUTION
        assert result.supply_demand_status == SupplyDemandStatus.MARKET_SATURATED

    def test_decay_ceiling(self):
        result = score_site(SiteInput(daily_flow=20000, transit_distance=Decimal("100")))
        assert result.flow_accessibility == 20000

    def test_zero_flow(self):
        result = score_site(SiteInput(
            daily_flow=0,
            transit_distance=Decimal("100"),
            competitor_count=2,
            bike_share_count=5,
            rent=Decimal("1000"),
        ))
        assert result.flow_accessibility == 0
        assert result.supply_demand_ratio == Decimal("999")
        assert result.sub_scores.supply_demand == Decimal("0.0")
        assert result.recommendation_tier == RecommendationTier.NOT_RECOMMENDED
        assert result.supply_demand_status == SupplyDemandStatus.MARKET_SATURATED

    def test_strongly_recommended_site(self):
        result = score_site(SiteInput(
            daily_flow=120000,
            transit_distance=Decimal("200"),
            competitor_count=2,
            bike_share_count=6,
            rent=Decimal("1100"),
        ))
        # ratio 0.17 → supply 91.5; 40 + 27.45 + 20 + 10 = 97.45
        assert result.composite_score == Decimal("97.5")
        assert result.recommendation_tier == RecommendationTier.STRONGLY_RECOMMENDED

    def test_more_competitors_never_raise_score(self, canonical_site):
        scores = [
            score_site(replace(canonical_site, competitor_count=n)).composite_score
            for n in range(0, 30)
        ]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_missing_rent_is_neutral(self, canonical_site):
        result = score_site(replace(canonical_site, rent=None))
        assert result.sub_scores.rent == Decimal("50.0")
        assert result.sub_scores.flow == score_site(canonical_site).sub_scores.flow

    def test_as_dict(self, canonical_site):
        data = score_site(canonical_site).as_dict()
        assert data["composite_score"] == 61.5
        assert data["supply_demand_ratio"] == 0.5
        assert data["recommendation"] == "consider with caution"
        assert data["supply_demand_status"] == "moderate competition"
        assert data["rent_score"] == 70.0

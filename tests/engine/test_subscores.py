from decimal import Decimal

from sitescore.engine.subscores import (
    NEUTRAL_RENT_SCORE,
    bike_share_score,
    flow_score,
    rent_score,
    supply_score,
)


class TestFlowScore:
    def test_linear(self):
        assert flow_score(45000) == Decimal("45.0")
        assert flow_score(12345) == Decimal("12.3")

    def test_saturates(self):
        assert flow_score(100000) == Decimal("100.0")
        assert flow_score(250000) == Decimal("100.0")

    def test_zero(self):
        assert flow_score(0) == Decimal("0.0")


class TestSupplyScore:
    def test_no_competition(self):
        assert supply_score(Decimal("0")) == Decimal("100.0")

    def test_linear_penalty(self):
        assert supply_score(Decimal("0.5")) == Decimal("75.0")
        assert supply_score(Decimal("1.33")) == Decimal("33.5")

    def test_floors_at_two(self):
        assert supply_score(Decimal("2.0")) == Decimal("0.0")
        assert supply_score(Decimal("999")) == Decimal("0.0")


class TestBikeShareScore:
    def test_per_dock(self):
        assert bike_share_score(0) == Decimal("0.0")
        assert bike_share_score(3) == Decimal("60.0")

    def test_saturates_at_five(self):
        assert bike_share_score(5) == Decimal("100.0")
        assert bike_share_score(12) == Decimal("100.0")


class TestRentScore:
    def test_bands(self):
        assert rent_score(Decimal("900")) == Decimal("100.0")
        assert rent_score(Decimal("1200")) == Decimal("100.0")
        assert rent_score(Decimal("1201")) == Decimal("85.0")
        assert rent_score(Decimal("1600")) == Decimal("70.0")
        assert rent_score(Decimal("1800")) == Decimal("55.0")
        assert rent_score(Decimal("2000")) == Decimal("40.0")

    def test_expensive(self):
        assert rent_score(Decimal("2000.01")) == Decimal("0.0")

    def test_unknown_rent_is_neutral(self):
        """Missing rent neither penalises nor rewards."""
        assert rent_score(None) == Decimal("50.0")
        assert rent_score(None) == NEUTRAL_RENT_SCORE

"""Tests for risk categories and provisioning."""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from credit_engine.data_models import CreditStatus, RiskCategory
from credit_engine.risk import (
    PROVISION_RULES,
    build_provisioning_report,
    get_provision_category,
    provision_amount,
    summarize_provisions,
)
from tests.conftest import make_payment


@pytest.mark.parametrize(
    "late_days,expected",
    [
        (0, RiskCategory.A),
        (1, RiskCategory.A),
        (15, RiskCategory.A),
        (16, RiskCategory.B),
        (30, RiskCategory.B),
        (31, RiskCategory.C),
        (60, RiskCategory.C),
        (61, RiskCategory.D),
        (90, RiskCategory.D),
        (91, RiskCategory.E),
        (400, RiskCategory.E),
    ],
)
def test_category_boundaries(late_days, expected):
    assert get_provision_category(late_days) is expected


def test_rules_cover_every_category():
    assert set(PROVISION_RULES) == set(RiskCategory)
    assert [rule.rate for rule in PROVISION_RULES.values()] == [
        Decimal("0.01"),
        Decimal("0.05"),
        Decimal("0.20"),
        Decimal("0.60"),
        Decimal("1.00"),
    ]


def test_provision_amount():
    assert provision_amount(Decimal("1000"), RiskCategory.C) == Decimal("200")
    assert provision_amount(Decimal("1000"), RiskCategory.E) == Decimal("1000")


class TestProvisioningReport:
    def test_only_active_credits(self, engine, weekly_credit):
        late = weekly_credit
        current = replace(
            weekly_credit,
            id="credit-test-002",
            payments=(make_payment("p1", datetime(2024, 1, 1, 9), "1000"),),
        )
        rejected = replace(weekly_credit, id="credit-test-003", status=CreditStatus.REJECTED)

        lines = build_provisioning_report([late, current, rejected], engine, date(2024, 2, 15))

        assert [line.credit_id for line in lines] == ["credit-test-001", "credit-test-002"]
        assert lines[0].late_days == 45
        assert lines[0].category is RiskCategory.C
        assert lines[0].provision_amount == Decimal("210")
        assert lines[1].remaining_balance == Decimal("50")
        assert lines[1].category is RiskCategory.B

    def test_summary_per_category(self, engine, weekly_credit):
        lines = build_provisioning_report([weekly_credit], engine, date(2024, 2, 15))
        summary = summarize_provisions(lines)

        assert set(summary) == set(RiskCategory)
        assert summary[RiskCategory.C] == {
            "credits": Decimal(1),
            "balance": Decimal("1050"),
            "provision": Decimal("210"),
        }
        assert summary[RiskCategory.A]["credits"] == 0

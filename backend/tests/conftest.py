"""
Pytest configuration and fixtures for the forecast engine test suite

Markers:
    - unit: Fast unit tests
    - property: Property-based tests (Hypothesis)
    - integration: Tests touching the database or the HTTP layer
    - golden: End-to-end scenarios with fixed expected numbers
    - regression: Composition rules that must not change
    - slow: Performance and stress tests (excluded by default)
"""

import pytest
import sys
import os
from decimal import Decimal
from sqlalchemy.orm import sessionmaker

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import create_db_engine, init_db
from forecast_models import (
    AssumptionSet, RevenueAssumption, CostAssumption, GrowthSpec, GrowthKind,
    LineKind, CostCategory, EventMetadata, EventCosts, EventGrowth, SpendStream,
    MarketingSetup, MarketingChannel, AllocationMode, BudgetApplication, TimeUnit,
)


# ═══════════════════════════════════════════════════════════════════════════════
# PYTEST CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "property: Property-based tests (Hypothesis)")
    config.addinivalue_line("markers", "integration: Tests touching the database or HTTP layer")
    config.addinivalue_line("markers", "golden: End-to-end scenarios with fixed expected numbers")
    config.addinivalue_line("markers", "regression: Composition rules that must not change")
    config.addinivalue_line("markers", "slow: Performance/stress tests (excluded by default)")


def pytest_addoption(parser):
    """Add custom CLI options."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests"
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is passed."""
    if config.getoption("--run-slow"):
        return

    skip_slow = pytest.mark.skip(reason="Need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# ═══════════════════════════════════════════════════════════════════════════════
# DATABASE
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test"""
    engine = create_db_engine("sqlite:///:memory:")
    init_db(bind=engine)

    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    engine.dispose()


# ═══════════════════════════════════════════════════════════════════════════════
# ASSUMPTION SETS
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def flat_baseline():
    """12 periods, revenue 1000 and cost 600 per period, no growth"""
    return AssumptionSet(
        revenue_streams=[RevenueAssumption(name="Sales", value=Decimal("1000"))],
        costs=[CostAssumption(name="Rent", value=Decimal("600"), category=CostCategory.OPERATIONS)],
        growth_model=GrowthSpec(kind=GrowthKind.LINEAR, rate=Decimal("0")),
        duration=12,
    )


@pytest.fixture
def event_model():
    """Weekly event with per-customer spend, COGS, staff and marketing channels"""
    return AssumptionSet(
        revenue_streams=[
            RevenueAssumption(name="Ticket Sales", value=Decimal("0")),
            RevenueAssumption(name="F&B Sales", value=Decimal("0")),
            RevenueAssumption(name="Sponsorship", value=Decimal("200"), kind=LineKind.RECURRING),
        ],
        costs=[
            CostAssumption(name="Venue Hire", value=Decimal("300"), kind=LineKind.RECURRING),
        ],
        growth_model=GrowthSpec(kind=GrowthKind.EXPONENTIAL, rate=Decimal("0")),
        metadata=EventMetadata(
            duration=8,
            time_unit=TimeUnit.WEEK,
            initial_attendance=Decimal("100"),
            per_customer={
                SpendStream.TICKET: Decimal("20"),
                SpendStream.FB: Decimal("10"),
                SpendStream.MERCHANDISE: Decimal("5"),
            },
            costs=EventCosts(
                setup_cost=Decimal("800"),
                spread_setup_cost=True,
                cogs_percent={SpendStream.FB: Decimal("30"), SpendStream.MERCHANDISE: Decimal("50")},
                staff_count=Decimal("4"),
                staff_cost_per_person=Decimal("50"),
                management_costs=Decimal("100"),
            ),
            growth=EventGrowth(
                attendance_growth_rate=Decimal("5"),
                use_customer_spend_growth=False,
                spend_growth_rates={SpendStream.TICKET: Decimal("2")},
            ),
        ),
        marketing=MarketingSetup(
            allocation_mode=AllocationMode.CHANNELS,
            channels=[
                MarketingChannel(id="social", name="Social", budget=Decimal("400"),
                                 distribution=BudgetApplication.SPREAD_EVENLY),
                MarketingChannel(id="print", name="Print", budget=Decimal("300"),
                                 distribution=BudgetApplication.UPFRONT),
            ],
        ),
    )

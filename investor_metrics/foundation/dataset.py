"""The literal, hand-authored dataset behind the investor dashboard.

All figures are audited source values as of the August 2025 close. Nothing
in here is derived: totals, ratios, growth rates and projections are
computed by :mod:`investor_metrics.analyses`. The ``reported`` block holds
the headline figures as they were published so the consistency validator
can check them against the computed values.
"""

from __future__ import annotations

import copy
from datetime import date
from functools import lru_cache
from typing import Any

import structlog

from investor_metrics.foundation.raw_facts import RawFacts, build_raw_facts

logger = structlog.get_logger(__name__)


def _cohort(month: str, *retention: float) -> dict[str, Any]:
    return {"month": month, "retention": list(retention)}


_DASHBOARD_DATASET: dict[str, Any] = {
    "financial_evolution": [
        {
            "year": "2023",
            "gtv": 9665152,
            "revenue": 1209801,
            "net_service_charge": 845626,
            "available_service_charge": 822658,
        },
        {
            "year": "2024",
            "gtv": 26446504,
            "revenue": 3053080,
            "net_service_charge": 2043640,
            "available_service_charge": 1876181,
        },
        {
            "year": "2025 YTD",
            "gtv": 33934016,
            "revenue": 5090102,
            # Service charge lines were closed against the July ledger and
            # have not been restated for the August revenue figure.
            "net_service_charge": 1320000,
            "available_service_charge": 1254000,
            "as_of": date(2025, 8, 31),
        },
    ],
    "user_growth": [
        {"period": "Pre-2025", "users": 485123, "as_of": date(2024, 12, 31), "label": "Foundation"},
        {"period": "Jan 2025", "users": 520000, "as_of": date(2025, 1, 31)},
        {"period": "Feb 2025", "users": 556000, "as_of": date(2025, 2, 28)},
        {"period": "Mar 2025", "users": 592000, "as_of": date(2025, 3, 31)},
        {"period": "Apr 2025", "users": 630000, "as_of": date(2025, 4, 30)},
        {"period": "May 2025", "users": 670000, "as_of": date(2025, 5, 31)},
        {"period": "Jun 2025", "users": 712000, "as_of": date(2025, 6, 30)},
        {"period": "Jul 2025", "users": 756000, "as_of": date(2025, 7, 31)},
        {"period": "Aug 2025", "users": 801492, "as_of": date(2025, 8, 31)},
    ],
    "retention_cohorts": {
        "buyers": [
            _cohort("Jan 2024", 100, 82, 75, 68, 65, 62, 60, 58, 56, 55, 54, 53, 52),
            _cohort("Feb 2024", 100, 84, 77, 70, 66, 63, 61, 59, 57, 56, 55, 54),
            _cohort("Mar 2024", 100, 85, 78, 72, 68, 65, 62, 60, 58, 57, 56),
            _cohort("Apr 2024", 100, 86, 79, 73, 69, 66, 64, 62, 60, 59),
            _cohort("May 2024", 100, 87, 80, 74, 70, 67, 65, 63, 61),
            _cohort("Jun 2024", 100, 88, 81, 75, 71, 68, 66, 64),
            _cohort("Jul 2024", 100, 89, 82, 76, 72, 69, 67),
            _cohort("Aug 2024", 100, 90, 83, 77, 73, 70),
            _cohort("Sep 2024", 100, 90, 84, 78, 74),
            _cohort("Oct 2024", 100, 91, 85, 79),
            _cohort("Nov 2024", 100, 91, 86),
            _cohort("Dec 2024", 100, 92),
            _cohort("Jan 2025", 100),
        ],
        "non_buyers": [
            _cohort("Jan 2024", 100, 45, 35, 28, 24, 21, 18, 16, 14, 13, 12, 11, 10),
            _cohort("Feb 2024", 100, 47, 37, 30, 25, 22, 19, 17, 15, 14, 13, 12),
            _cohort("Mar 2024", 100, 48, 38, 31, 26, 23, 20, 18, 16, 15, 14),
            _cohort("Apr 2024", 100, 49, 39, 32, 27, 24, 21, 19, 17, 16),
            _cohort("May 2024", 100, 50, 40, 33, 28, 25, 22, 20, 18),
            _cohort("Jun 2024", 100, 51, 41, 34, 29, 26, 23, 21),
            _cohort("Jul 2024", 100, 52, 42, 35, 30, 27, 24),
            _cohort("Aug 2024", 100, 53, 43, 36, 31, 28),
            _cohort("Sep 2024", 100, 54, 44, 37, 32),
            _cohort("Oct 2024", 100, 55, 45, 38),
            _cohort("Nov 2024", 100, 56, 46),
            _cohort("Dec 2024", 100, 57),
            _cohort("Jan 2025", 100),
        ],
    },
    "unit_economics": {
        "ltv": "7.08",
        "cac": "0.28",
        # Industry averages: CAC $50-85, LTV $150-255, margin 20-25%.
        "industry_ltv": 210,
        "industry_cac": 70,
        "industry_ltv_cac_ratio": 3,
        "industry_margin": "22.5",
    },
    "sales": {"total_purchasers": 221704, "tickets_sold": 1277498},
    "engagement": {
        "daily_messages": 1500,
        "messages_per_chat": "2.41",
        "avg_chat_duration": "5.19",
        "daily_comments": 310,
        "comments_on_events": 113000,
        "comments_on_feed": 9200,
        "comments_on_videos": 14100,
        "news_users": 947000,
        "event_views": 12900000,
        "unique_event_users": 174000,
        "avg_interactions_per_user": 74,
        "push_notification_users": 975000,
        "avg_push_time": "0.54",
        "session_duration": [
            {"month": "Apr 24", "minutes": "8.8"},
            {"month": "May 24", "minutes": "9.2"},
            {"month": "Jun 24", "minutes": "10.0"},
            {"month": "Jul 24", "minutes": "11.6"},
            {"month": "Aug 24", "minutes": "10.9"},
            {"month": "Sep 24", "minutes": "11.9"},
            {"month": "Oct 24", "minutes": "12.2"},
            {"month": "Nov 24", "minutes": "10.8"},
            {"month": "Dec 24", "minutes": "11.0"},
            {"month": "Jan 25", "minutes": "10.8"},
            {"month": "Feb 25", "minutes": "11.3"},
            {"month": "Mar 25", "minutes": "12.0"},
            {"month": "Apr 25", "minutes": "12.8"},
            {"month": "May 25", "minutes": "13.2"},
            {"month": "Jun 25", "minutes": "12.5"},
            {"month": "Jul 25", "minutes": "11.9"},
            {"month": "Aug 25", "minutes": "12.4"},
        ],
        "monthly_active_users": [
            {"month": "Sep 24", "users": 125000},
            {"month": "Oct 24", "users": 185000},
            {"month": "Nov 24", "users": 195000},
            {"month": "Dec 24", "users": 219301},
            {"month": "Jan 25", "users": 218000},
            {"month": "Feb 25", "users": 192000},
            {"month": "Mar 25", "users": 195000},
            {"month": "Apr 25", "users": 180000},
            {"month": "May 25", "users": 155000},
            {"month": "Jun 25", "users": 152000},
            {"month": "Jul 25", "users": 175000},
            {"month": "Aug 25", "users": 182000},
        ],
        "daily_active_users": [
            {"month": "Sep 24", "median": 20000, "mean": 25000, "peak": 45000},
            {"month": "Oct 24", "median": 22000, "mean": 27000, "peak": 55000},
            {"month": "Nov 24", "median": 23000, "mean": 28000, "peak": 60000},
            {"month": "Dec 24", "median": 24000, "mean": 29000, "peak": 65000},
            {"month": "Jan 25", "median": 25000, "mean": 30000, "peak": 70000},
            {"month": "Feb 25", "median": 25000, "mean": 30000, "peak": 75000},
            {"month": "Mar 25", "median": 25000, "mean": 30000, "peak": 80000},
            {"month": "Apr 25", "median": 25000, "mean": 30000, "peak": 85000},
            {"month": "May 25", "median": 25000, "mean": 30000, "peak": 90000},
            {"month": "Jun 25", "median": 25000, "mean": 30000, "peak": 92000},
            {"month": "Jul 25", "median": 25000, "mean": 30000, "peak": 94000},
            {"month": "Aug 25", "median": 25000, "mean": 30119, "peak": 95823},
        ],
        "stickiness": [
            {"days": 1, "percentage": "54.77"},
            {"days": 2, "percentage": "23.07"},
            {"days": 3, "percentage": "11.17"},
        ],
    },
    "cumulative_return": [
        {"days": 0, "buyers": 0, "non_buyers": 0},
        {"days": 1, "buyers": 25, "non_buyers": 15},
        {"days": 3, "buyers": 45, "non_buyers": 28},
        {"days": 5, "buyers": 60, "non_buyers": 38},
        {"days": 7, "buyers": 70, "non_buyers": 45},
        {"days": 14, "buyers": 78, "non_buyers": 52},
        {"days": 21, "buyers": 83, "non_buyers": 57},
        {"days": 30, "buyers": "85.92", "non_buyers": "60.87"},
        {"days": 45, "buyers": 88, "non_buyers": 64},
        {"days": 60, "buyers": 90, "non_buyers": 66},
        {"days": 90, "buyers": 93, "non_buyers": 69},
        {"days": 120, "buyers": 95, "non_buyers": 71},
        {"days": 150, "buyers": 96, "non_buyers": 73},
        {"days": 168, "buyers": 96, "non_buyers": 74},
    ],
    "funding": {
        "stage": "Seed",
        "raised": 3000000,
        "valuation": 40000000,
        "use_of_funds": [
            {"category": "Product Development", "percentage": 50, "amount": 1500000},
            {"category": "Team Expansion", "percentage": 20, "amount": 600000},
            {"category": "Geographic Expansion", "percentage": 20, "amount": 600000},
            {"category": "Working Capital", "percentage": 10, "amount": 300000},
        ],
    },
    "plan_projections": [
        {"year": 2025, "users": 1200000, "gtv": 51000000, "revenue": 5100000},
        {"year": 2026, "users": 2500000, "gtv": 120000000, "revenue": 18000000},
        {"year": 2027, "users": 4000000, "gtv": 250000000, "revenue": 37500000},
    ],
    # Service charge (15%) revenue by month; not reconciled to fiscal revenue.
    "monthly_revenue": [
        {
            "year": 2024,
            "months": [
                {"month": "Jan", "revenue": 168350},
                {"month": "Feb", "revenue": 89205},
                {"month": "Mar", "revenue": 222028},
                {"month": "Apr", "revenue": 192657},
                {"month": "May", "revenue": 244319},
                {"month": "Jun", "revenue": 201222},
                {"month": "Jul", "revenue": 242401},
                {"month": "Aug", "revenue": 162872},
                {"month": "Sep", "revenue": 311646},
                {"month": "Oct", "revenue": 531314},
                {"month": "Nov", "revenue": 503649},
                {"month": "Dec", "revenue": 492161},
            ],
        },
        {
            "year": 2025,
            "months": [
                {"month": "Jan", "revenue": 392767},
                {"month": "Feb", "revenue": 358792},
                {"month": "Mar", "revenue": 210274},
                {"month": "Apr", "revenue": 216636},
                {"month": "May", "revenue": 202968},
                {"month": "Jun", "revenue": 279880},
                {"month": "Jul", "revenue": 588586},
                {"month": "Aug", "revenue": 294807},
                {"month": "Sep", "revenue": 580000, "actual": False},
                {"month": "Oct", "revenue": 650000, "actual": False},
                {"month": "Nov", "revenue": 700000, "actual": False},
                {"month": "Dec", "revenue": 725290, "actual": False},
            ],
        },
    ],
    "market": {
        "events_coverage": 80,
        "segments": [
            {"category": "Electronic Music Tickets", "value": 1080000000, "percentage": 60},
            {"category": "Festival Packages", "value": 360000000, "percentage": 20},
            {"category": "VIP Experiences", "value": 180000000, "percentage": 10},
            {"category": "Merchandise & Add-ons", "value": 90000000, "percentage": 5},
            {"category": "Travel & Hospitality", "value": 90000000, "percentage": 5},
        ],
        "regions": [
            {"region": "Argentina", "current": 70000000, "potential": 180000000, "penetration": 80},
            {"region": "Brazil", "current": 0, "potential": 800000000, "penetration": 0},
            {"region": "Mexico", "current": 0, "potential": 400000000, "penetration": 0},
            {"region": "Colombia", "current": 0, "potential": 200000000, "penetration": 0},
            {"region": "Chile", "current": 0, "potential": 135000000, "penetration": 0},
            {"region": "Peru", "current": 0, "potential": 90000000, "penetration": 0},
        ],
    },
    "reported": {
        "total_users": 801492,
        "new_users_ytd": 316369,
        "daily_growth_ytd": 1302,
        "total_revenue": 9352983,
        "total_gtv": 70045672,
        "ltv_cac_ratio": "25.3",
        "revenue_full_year_estimate": 7600000,
        "gtv_full_year_estimate": 51000000,
        "peak_mau": 219301,
        "peak_dau": 95823,
    },
}


def dashboard_dataset() -> dict[str, Any]:
    """Return a deep copy of the literal dataset.

    Callers may modify the copy (tests build invalid variants this way)
    without affecting the shared fact store.
    """
    return copy.deepcopy(_DASHBOARD_DATASET)


@lru_cache(maxsize=1)
def load_raw_facts() -> RawFacts:
    """Build the shared, immutable fact store from the literal dataset.

    The result is cached: every caller receives the same instance.

    Raises
    ------
    ConstructionError
        If the literal dataset is invalid.
    """
    raw = build_raw_facts(_DASHBOARD_DATASET)
    logger.info(
        "raw_facts_loaded",
        financial_years=len(raw.financial_evolution),
        user_growth_periods=len(raw.user_growth),
        buyer_cohorts=len(raw.retention_cohorts.buyers),
        non_buyer_cohorts=len(raw.retention_cohorts.non_buyers),
    )
    return raw

"""
Dagster Definitions for the stake pool engine
"""

from dagster import Definitions

from stakepool.defs import (
    oracle_assets,
    analytics_assets,
    beacon_report_job,
    funding_analytics_job,
    funding_analytics_schedule,
    resources,
)

defs = Definitions(
    assets=[
        *oracle_assets,
        *analytics_assets,
    ],
    jobs=[
        beacon_report_job,
        funding_analytics_job,
    ],
    schedules=[
        funding_analytics_schedule,
    ],
    resources=resources,
)

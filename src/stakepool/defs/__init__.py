from dagster import (
    Definitions,
    ScheduleDefinition,
    define_asset_job,
    AssetSelection,
)

from .assets.beacon import beacon_report_asset
from .assets.analytics import operator_funding_concentration_asset

from .resources import DatabaseResource, ConfigResource


oracle_assets = [beacon_report_asset]

analytics_assets = [operator_funding_concentration_asset]


beacon_report_job = define_asset_job(
    name="beacon_report",
    selection=AssetSelection.assets(*oracle_assets),
    description="Record an oracle report and distribute rewards",
)

funding_analytics_job = define_asset_job(
    name="funding_analytics",
    selection=AssetSelection.assets(*analytics_assets),
    description="Snapshot funding concentration across operators",
)


funding_analytics_schedule = ScheduleDefinition(
    job=funding_analytics_job,
    cron_schedule="15 0 * * *",
    description="Snapshot funding concentration daily",
)


resources = {
    "db": DatabaseResource(),
    "pool_config": ConfigResource(),
}

# defs/assets/beacon.py
"""
Oracle Report Assets - push a balance report into the pool and distribute rewards
"""

from dagster import Int, OpExecutionContext, Output, String, asset

from stakepool.services.pool import StakingPool
from ..resources import ConfigResource, DatabaseResource


@asset(
    config_schema={
        "validators": Int,
        "balance": Int,
        "reporter": String,
    },
    description="Records an oracle report and mints fee shares for balance growth",
    compute_kind="python",
)
def beacon_report_asset(
    context: OpExecutionContext,
    db: DatabaseResource,
    pool_config: ConfigResource,
) -> Output[int]:
    report = context.op_config
    pool = StakingPool(db, pool_config, logger=context.log)

    distribution = pool.report_beacon(
        report["reporter"], report["validators"], report["balance"]
    )

    if distribution is None:
        context.log.info("No balance growth since the last report")
        return Output(0, metadata={"validators": report["validators"]})

    return Output(
        distribution.amount,
        metadata={
            "validators": report["validators"],
            "shares_to_mint": str(distribution.shares_to_mint),
            "operator_rewards": str(distribution.operator_rewards),
            "treasury_amount": str(distribution.treasury_amount),
            "total_active_validators": distribution.total_active_validators,
        },
    )

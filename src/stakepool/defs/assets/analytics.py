# defs/assets/analytics.py
"""
Calculate funding concentration across operators (HHI, Gini, top-N percentages).
"""

from dagster import OpExecutionContext, Output, asset

from stakepool.db.models.operators import FundingConcentrationSnapshot
from stakepool.services.registry import OperatorRegistry
from stakepool.utils.calculations import (
    compute_funding_concentration,
    operators_frame,
)
from ..resources import ConfigResource, DatabaseResource


@asset(
    description="Snapshot of how funded slots are spread across operators",
    compute_kind="python",
)
def operator_funding_concentration_asset(
    context: OpExecutionContext,
    db: DatabaseResource,
    pool_config: ConfigResource,
) -> Output[int]:
    with db.get_session() as session:
        registry = OperatorRegistry(session, context.log)
        df = operators_frame(registry.get_all())

        if df.empty:
            context.log.warning("No operators registered")
            return Output(0, metadata={"skipped": True})

        if pool_config.enable_detailed_logging:
            for idx, row in enumerate(df.itertuples(index=False), 1):
                if idx % pool_config.log_batch_progress_every == 0:
                    context.log.info(f"Processed operator {idx}/{len(df)}")
                context.log.debug(
                    f"{row.name}: funded={row.funded}, active={row.active_validators}, "
                    f"capacity={row.capacity}"
                )

        metrics = compute_funding_concentration(df, pool_config.top_n_operators)
        session.add(FundingConcentrationSnapshot(**metrics))

    context.log.info(
        f"Funding concentration: {metrics['operator_count']} operators, "
        f"HHI {metrics['funded_hhi']:.4f}, Gini {metrics['funded_gini']:.4f}"
    )

    return Output(
        metrics["operator_count"],
        metadata={
            "funded_hhi": metrics["funded_hhi"],
            "funded_gini": metrics["funded_gini"],
            "effective_operators": metrics["effective_operators"],
            "total_funded": metrics["total_funded"],
        },
    )

"""
Refresh the aggregates and summaries served to the portal

Every sub-directory of the fragments root is treated as one geography,
named by its geography code.
All aggregates are written before any summaries are created.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from jheem_plot_data.aggregation import ON_DUPLICATE_OPTIONS, LocationAggregator
from jheem_plot_data.geographies import get_city_registry, get_state_registry
from jheem_plot_data.io import write_json
from jheem_plot_data.summaries import LocationSummariser, SummaryConfig


def main(argv: list[str] | None = None) -> None:
    """
    Refresh the data

    Parameters
    ----------
    argv
        Command-line arguments. If not supplied, `sys.argv` is used.
    """
    default_config = SummaryConfig()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("fragments_root", type=Path)
    parser.add_argument("output_dir", type=Path)
    parser.add_argument("--level", choices=["city", "state"], default="city")
    parser.add_argument(
        "--on-duplicate", choices=ON_DUPLICATE_OPTIONS, default="overwrite"
    )
    parser.add_argument(
        "--projection-year",
        type=int,
        default=default_config.projection_year,
        help="Year of the projections in city summaries",
    )
    parser.add_argument(
        "--start-year",
        type=int,
        default=default_config.intervention_start_year,
        help="First year of the intervention period in state summaries",
    )
    parser.add_argument(
        "--end-year",
        type=int,
        default=default_config.intervention_end_year,
        help="Last year of the intervention period in state summaries",
    )
    parser.add_argument("--n-processes", type=int, default=None)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "INFO")

    input_output_map = {
        d: args.output_dir / f"{d.name}.json"
        for d in sorted(args.fragments_root.iterdir())
        if d.is_dir()
    }

    aggregator = LocationAggregator(
        on_duplicate=args.on_duplicate,
        progress=True,
        n_processes=args.n_processes,
    )
    aggregation_results = aggregator(input_output_map)

    if args.level == "state":
        summariser = LocationSummariser(
            registry=get_state_registry(),
            config=SummaryConfig(
                projection_mode="cumulative",
                intervention_start_year=args.start_year,
                intervention_end_year=args.end_year,
            ),
            collection_key="states",
            n_processes=args.n_processes,
        )
        summaries_file = args.output_dir / "state-summaries.json"
    else:
        summariser = LocationSummariser(
            registry=get_city_registry(),
            config=SummaryConfig(
                projection_mode="point", projection_year=args.projection_year
            ),
            collection_key="cities",
            n_processes=args.n_processes,
        )
        summaries_file = args.output_dir / "city-summaries.json"

    # The aggregator has returned, so every aggregate file is complete
    summarisation_result = summariser(sorted(aggregation_results))
    write_json(summarisation_result.document, summaries_file)

    n_skipped_files = sum(len(r.skipped) for r in aggregation_results.values())
    logger.info(
        f"Wrote {len(aggregation_results)} aggregates "
        f"({n_skipped_files} files skipped) "
        f"and {summaries_file} "
        f"({len(summarisation_result.skipped)} geographies skipped)"
    )


if __name__ == "__main__":
    main()

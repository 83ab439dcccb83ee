"""
Test of the full refresh workflow: fragments to aggregates to summaries to panels
"""

from __future__ import annotations

import runpy
from pathlib import Path

from jheem_plot_data.aggregation import LocationAggregator
from jheem_plot_data.geographies import get_city_registry
from jheem_plot_data.io import load_json, write_json
from jheem_plot_data.store import AggregateStore, get_plot_data
from jheem_plot_data.summaries import LocationSummariser, SummaryConfig
from jheem_plot_data.testing import (
    create_fragment,
    create_sim_record,
    write_fragment,
)
from jheem_plot_data.transform import transform_plot_data

CITIES = {
    "C.12580": "Baltimore-Columbia-Towson, MD",
    "C.33100": "Miami-Fort Lauderdale-West Palm Beach, FL",
}


def write_city_fragments(fragments_root, code, label, include_suppression=True):
    kwargs = dict(geography_code=code, geography_label=label)
    out_dir = fragments_root / code

    outcome_records = {
        "diagnosed.prevalence": [
            create_sim_record(2024, 20000.0, outcome="diagnosed.prevalence")
        ],
        "incidence": [
            create_sim_record(2030, 400.0, lower=300.0, upper=500.0),
            create_sim_record(
                2030, 500.0, simset="Cessation", lower=380.0, upper=620.0
            ),
        ],
    }
    if include_suppression:
        outcome_records["suppression"] = [
            create_sim_record(2024, 0.8, outcome="suppression")
        ]

    for outcome, sim in outcome_records.items():
        write_fragment(create_fragment(sim=sim, outcome=outcome, **kwargs), out_dir)

    write_fragment(
        create_fragment(
            sim=[
                create_sim_record(2030, 100.0, facet_by1="male"),
                create_sim_record(2030, 130.0, simset="Cessation", facet_by1="male"),
                create_sim_record(2030, 50.0, facet_by1="female"),
            ],
            facet="sex",
            **kwargs,
        ),
        out_dir,
    )
    (out_dir / "cessation" / "notes.json").write_text("not a fragment")


def test_refresh_workflow(tmp_path):
    fragments_root = tmp_path / "fragments"
    output_dir = tmp_path / "public" / "data"
    for code, label in CITIES.items():
        write_city_fragments(
            fragments_root, code, label, include_suppression=code == "C.12580"
        )

    aggregator = LocationAggregator(n_processes=None)
    aggregation_results = aggregator(
        {
            d: output_dir / f"{d.name}.json"
            for d in sorted(fragments_root.iterdir())
        }
    )

    assert {p.stem: r.file_count for p, r in aggregation_results.items()} == {
        "C.12580": 4,
        "C.33100": 3,
    }
    for res in aggregation_results.values():
        assert len(res.skipped) == 1

    summariser = LocationSummariser(
        registry=get_city_registry(),
        config=SummaryConfig(projection_mode="point"),
        n_processes=None,
    )
    summarisation_result = summariser(sorted(aggregation_results))
    summaries_file = write_json(
        summarisation_result.document, output_dir / "city-summaries.json"
    )

    summaries = load_json(summaries_file)
    assert list(summaries["cities"]) == ["C.12580"]
    baltimore = summaries["cities"]["C.12580"]
    assert baltimore["shortName"] == "Baltimore"
    assert baltimore["impact"]["cessationIncreasePercent"] == 25
    assert [s.item for s in summarisation_result.skipped] == ["C.33100"]

    # Serving a chart from the written aggregate
    store = AggregateStore(output_dir)
    aggregate = store.load("C.12580")
    fragment = get_plot_data(
        aggregate, "cessation", "incidence", "mean.and.interval", "sex"
    )
    panels = transform_plot_data(fragment)

    assert [p.facet_value for p in panels] == ["female", "male"]
    assert panels[1].to_dict()["data"] == [
        {"year": 2030, "value": 130.0, "baselineValue": 100.0}
    ]


def test_refresh_script_state_intervention_period(tmp_path):
    fragments_root = tmp_path / "fragments"
    output_dir = tmp_path / "public" / "data"
    kwargs = dict(geography_code="TX", geography_label="Texas")
    outcome_records = {
        "diagnosed.prevalence": [
            create_sim_record(2024, 100000.0, outcome="diagnosed.prevalence")
        ],
        "suppression": [create_sim_record(2024, 0.75, outcome="suppression")],
        "incidence": [
            *[create_sim_record(year, 1000.0) for year in range(2024, 2033)],
            *[
                create_sim_record(year, 1200.0, simset="Cessation")
                for year in range(2024, 2033)
            ],
        ],
    }
    for outcome, sim in outcome_records.items():
        write_fragment(
            create_fragment(sim=sim, outcome=outcome, **kwargs),
            fragments_root / "TX",
        )

    script = runpy.run_path(
        str(Path(__file__).parents[2] / "scripts" / "refresh-location-data.py")
    )
    script["main"](
        [
            str(fragments_root),
            str(output_dir),
            "--level",
            "state",
            "--start-year",
            "2025",
            "--end-year",
            "2030",
        ]
    )

    summaries = load_json(output_dir / "state-summaries.json")
    assert list(summaries["states"]) == ["TX"]
    texas = summaries["states"]["TX"]
    assert texas["impact"] == {
        "cessationIncreasePercent": 20,
        "cessationIncreaseAbsolute": 1200,
        "targetYear": 2030,
        "startYear": 2025,
        "headline": (
            "Relative increase in new HIV infections if funding stops, 2025-2030"
        ),
    }
    assert texas["metrics"]["incidenceBaseline"]["value"] == 6000
    assert texas["metrics"]["incidenceBaseline"]["label"] == (
        "Cumulative new HIV infections (baseline, 2025-2030)"
    )
    assert (output_dir / "TX.json").exists()

"""
Tests of `jheem_plot_data.transform`
"""

from __future__ import annotations

import pytest

from jheem_plot_data.exceptions import MalformedFragmentError
from jheem_plot_data.transform import (
    ChartDataPoint,
    ChartDisplayOptions,
    ChartObservation,
    SimulationLine,
    SimulationPoint,
    get_composite_facet_key,
    merge_simulation_data,
    transform_individual_simulations,
    transform_observations,
    transform_plot_data,
    value_range,
    year_range,
)
from jheem_plot_data.testing import create_fragment, create_sim_record


def test_merge_simulation_data():
    res = merge_simulation_data(
        [
            create_sim_record(2024, 100.0),
            create_sim_record(2024, 150.0, simset="FundingCut"),
        ]
    )

    assert res == [ChartDataPoint(year=2024, value=150.0, baseline_value=100.0)]
    assert res[0].to_dict() == {"year": 2024, "value": 150.0, "baselineValue": 100.0}


def test_merge_simulation_data_intervals_and_sorting():
    res = merge_simulation_data(
        [
            create_sim_record(2025, 2.0, lower=1.5, upper=2.5),
            create_sim_record(2024, 1.0, lower=0.5, upper=1.5),
            create_sim_record(2025, 3.0, simset="Cessation", lower=2.0, upper=4.0),
        ]
    )

    assert res == [
        ChartDataPoint(
            year=2024, baseline_value=1.0, baseline_lower=0.5, baseline_upper=1.5
        ),
        ChartDataPoint(
            year=2025,
            value=3.0,
            lower=2.0,
            upper=4.0,
            baseline_value=2.0,
            baseline_lower=1.5,
            baseline_upper=2.5,
        ),
    ]


def test_merge_simulation_data_last_intervention_wins():
    res = merge_simulation_data(
        [
            create_sim_record(2024, 10.0, simset="Interruption"),
            create_sim_record(2024, 20.0, simset="Cessation"),
        ]
    )

    assert res == [ChartDataPoint(year=2024, value=20.0)]


def test_transform_individual_simulations():
    res = transform_individual_simulations(
        [
            create_sim_record(2026, 3.0, sim="1"),
            create_sim_record(2025, 2.0, sim="1"),
            create_sim_record(2025, 5.0, sim="2"),
            create_sim_record(2025, 7.0, simset="Cessation", sim="1"),
            create_sim_record(2025, 9.0, simset="Cessation"),
        ]
    )

    assert res == [
        SimulationLine(
            sim_id="1",
            simset="Baseline",
            points=[SimulationPoint(2025, 2.0), SimulationPoint(2026, 3.0)],
        ),
        SimulationLine(
            sim_id="2", simset="Baseline", points=[SimulationPoint(2025, 5.0)]
        ),
        SimulationLine(
            sim_id="1", simset="Cessation", points=[SimulationPoint(2025, 7.0)]
        ),
        SimulationLine(
            sim_id="unknown", simset="Cessation", points=[SimulationPoint(2025, 9.0)]
        ),
    ]


@pytest.mark.parametrize(
    "record, fallback, exp",
    (
        pytest.param({"facet.by1": "male"}, "unknown", "male", id="single"),
        pytest.param(
            {"facet.by1": "13-24 years", "facet.by2": "black", "facet.by3": "msm"},
            "unknown",
            "13-24 years | black | msm",
            id="multiple",
        ),
        pytest.param(
            {"facet.by1": "male", "facet.by3": "idu"},
            "unknown",
            "male | idu",
            id="gap",
        ),
        pytest.param({}, "unknown", "unknown", id="sim-fallback"),
        pytest.param({"facet.by1": ""}, "all", "all", id="obs-fallback"),
    ),
)
def test_get_composite_facet_key(record, fallback, exp):
    assert get_composite_facet_key(record, fallback=fallback) == exp


def test_transform_observations():
    res = transform_observations(
        [
            {"year": "2020", "value": 1.0, "source": "cdc", "data_url": "https://x"},
            {"year": 2021, "value": 2.0, "source": "cdc"},
        ]
    )

    assert res == [
        ChartObservation(year=2020, value=1.0, source="cdc", url="https://x"),
        ChartObservation(year=2021, value=2.0, source="cdc"),
    ]


def test_transform_plot_data_malformed():
    with pytest.raises(MalformedFragmentError):
        transform_plot_data({"sim": [create_sim_record(2020, 1.0)], "obs": {}})


@pytest.mark.parametrize("sim", (None, []))
def test_transform_plot_data_no_data(sim):
    assert transform_plot_data(create_fragment(sim=sim)) == []


def test_transform_plot_data_unfaceted():
    fragment = create_fragment(
        sim=[
            create_sim_record(2024, 100.0),
            create_sim_record(2024, 150.0, simset="FundingCut"),
        ],
        obs=[{"year": "2020", "value": 90.0, "source": "cdc"}],
    )

    res = transform_plot_data(fragment)

    assert len(res) == 1
    panel = res[0]
    assert panel.facet_value == "all"
    assert panel.facet_label == "All"
    assert not panel.is_individual_simulation
    assert panel.individual_simulations is None
    assert panel.data == [ChartDataPoint(year=2024, value=150.0, baseline_value=100.0)]
    assert panel.observations == [ChartObservation(year=2020, value=90.0, source="cdc")]


def test_transform_plot_data_faceted_metadata_but_no_facet_values():
    fragment = create_fragment(
        sim=[create_sim_record(2024, 100.0), create_sim_record(2025, 110.0)],
        facet="sex",
    )

    res = transform_plot_data(fragment)

    assert [p.facet_value for p in res] == ["all"]


def test_transform_plot_data_faceted():
    fragment = create_fragment(
        sim=[
            create_sim_record(2024, 1.0, facet_by1="male"),
            create_sim_record(2024, 2.0, facet_by1="female"),
            create_sim_record(2024, 3.0, simset="Cessation", facet_by1="male"),
            create_sim_record(2024, 4.0, facet_by1="msm"),
        ],
        obs=[
            {"year": 2020, "value": 0.5, "source": "cdc", "facet.by1": "male"},
            {"year": 2020, "value": 0.7, "source": "cdc"},
        ],
        facet="sex",
    )

    res = transform_plot_data(fragment)

    assert [p.facet_value for p in res] == ["female", "male", "msm"]
    assert [p.facet_label for p in res] == ["Female", "Male", "MSM"]
    female, male, msm = res
    assert male.data == [ChartDataPoint(year=2024, value=3.0, baseline_value=1.0)]
    assert male.observations == [ChartObservation(year=2020, value=0.5, source="cdc")]
    # Observations without facet values are grouped under "all",
    # which doesn't match any panel
    assert female.observations == []
    assert msm.observations == []


def test_transform_plot_data_facet_key_matches_single_dimension():
    ages = ["13-24 years", "25-34 years", "35-44 years"]
    fragment = create_fragment(
        sim=[
            create_sim_record(2024, float(i), facet_by1=age)
            for i, age in enumerate(ages)
        ],
        facet="age",
    )

    res = transform_plot_data(fragment)

    assert [p.facet_value for p in res] == ages
    for panel in res:
        assert panel.facet_label == panel.facet_value


def test_transform_plot_data_multi_dimensional():
    fragment = create_fragment(
        sim=[
            create_sim_record(2024, 1.0, facet_by1="13-24 years", facet_by2="black"),
            create_sim_record(2024, 2.0, facet_by1="13-24 years", facet_by2="hispanic"),
        ],
        facet="age+race",
    )

    res = transform_plot_data(fragment)

    assert [p.facet_value for p in res] == [
        "13-24 years | black",
        "13-24 years | hispanic",
    ]


def test_transform_plot_data_individual_simulation():
    fragment = create_fragment(
        sim=[
            create_sim_record(2025, 2.0, sim="1", facet_by1="male"),
            create_sim_record(2024, 1.0, sim="1", facet_by1="male"),
            create_sim_record(2024, 1.5, sim="2", facet_by1="male"),
            create_sim_record(2024, 3.0, sim="1", facet_by1="female"),
        ],
        statistic="individual.simulation",
        facet="sex",
    )

    res = transform_plot_data(fragment)

    assert [p.facet_value for p in res] == ["female", "male"]
    for panel in res:
        assert panel.is_individual_simulation
        assert panel.data == []

    male = res[1]
    assert male.individual_simulations == [
        SimulationLine(
            sim_id="1",
            simset="Baseline",
            points=[SimulationPoint(2024, 1.0), SimulationPoint(2025, 2.0)],
        ),
        SimulationLine(
            sim_id="2", simset="Baseline", points=[SimulationPoint(2024, 1.5)]
        ),
    ]
    assert male.to_dict()["individualSimulations"][0] == {
        "simId": "1",
        "simset": "Baseline",
        "points": [{"year": 2024, "value": 1.0}, {"year": 2025, "value": 2.0}],
    }


def test_year_range():
    assert year_range([ChartDataPoint(2030), ChartDataPoint(2015)]) == (2015, 2030)
    assert year_range([]) == (2010, 2035)


@pytest.mark.parametrize(
    "include_baseline, include_ci, exp",
    (
        pytest.param(False, False, (8.0, 32.0), id="values-only"),
        pytest.param(False, True, (2.0, 38.0), id="ci"),
        pytest.param(True, False, (1.0, 109.0), id="baseline"),
        pytest.param(True, True, (0.0, 219.5), id="baseline-and-ci"),
    ),
)
def test_value_range(include_baseline, include_ci, exp):
    points = [
        ChartDataPoint(2020, value=10.0, lower=5.0, upper=15.0),
        ChartDataPoint(2021, value=20.0, baseline_value=100.0, baseline_upper=200.0),
        ChartDataPoint(2022, value=30.0, lower=25.0, upper=35.0),
    ]

    res = value_range(
        points, [], include_baseline=include_baseline, include_ci=include_ci
    )

    assert res == pytest.approx(exp)


def test_value_range_observations_always_included():
    res = value_range(
        [ChartDataPoint(2020, value=10.0), ChartDataPoint(2021, value=20.0)],
        [ChartObservation(2020, value=30.0)],
        include_baseline=False,
        include_ci=False,
    )

    assert res == pytest.approx((8.0, 32.0))


def test_value_range_individual_lines():
    lines = [
        SimulationLine("1", "Baseline", [SimulationPoint(2020, 100.0)]),
        SimulationLine("1", "Cessation", [SimulationPoint(2020, 10.0)]),
        SimulationLine("2", "Cessation", [SimulationPoint(2020, 30.0)]),
    ]

    assert value_range(
        [], [], include_baseline=False, include_ci=False, individual_lines=lines
    ) == pytest.approx((8.0, 32.0))
    assert value_range(
        [], [], include_baseline=True, include_ci=False, individual_lines=lines
    ) == pytest.approx((1.0, 109.0))


def test_value_range_empty():
    assert value_range([], [], include_baseline=True, include_ci=True) == (0.0, 100.0)


def test_chart_display_options_hides_observations():
    fragment = create_fragment(
        sim=[
            create_sim_record(2024, 10.0, simset="Cessation"),
            create_sim_record(2025, 20.0, simset="Cessation"),
        ],
        obs=[{"year": 2020, "value": 1000.0, "source": "cdc"}],
    )
    (panel,) = transform_plot_data(fragment)

    hidden = ChartDisplayOptions(show_observations=False)
    shown = ChartDisplayOptions(show_observations=True)

    assert hidden.get_value_range(panel) == pytest.approx((9.0, 21.0))
    assert shown.get_value_range(panel)[1] == pytest.approx(1099.0)
    assert hidden.get_year_range(panel) == (2024, 2025)

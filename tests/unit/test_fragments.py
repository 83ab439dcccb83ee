"""
Tests of `jheem_plot_data.fragments`
"""

from __future__ import annotations

import re

import pytest

from jheem_plot_data.exceptions import MalformedFragmentError, UnrecognisedValueError
from jheem_plot_data.fragments import (
    FragmentFilename,
    RecordKind,
    assert_is_known_statistic,
    get_fragment_metadata,
    get_obs_records,
    get_record_kind,
    get_sim_records,
    parse_fragment_filename,
)
from jheem_plot_data.testing import create_fragment, create_sim_record


@pytest.mark.parametrize(
    "filename, exp",
    (
        pytest.param(
            "incidence_mean.and.interval_unfaceted.json",
            FragmentFilename("incidence", "mean.and.interval", "none"),
            id="unfaceted",
        ),
        pytest.param(
            "testing_individual.simulation_facet_age.json",
            FragmentFilename("testing", "individual.simulation", "age"),
            id="faceted",
        ),
        pytest.param(
            "diagnosed.prevalence_median.and.interval_facet_sex.json",
            FragmentFilename("diagnosed.prevalence", "median.and.interval", "sex"),
            id="dotted-outcome",
        ),
        pytest.param(
            "new_diagnoses_mean.and.interval_facet_age_race.json",
            FragmentFilename("new_diagnoses", "mean.and.interval", "age_race"),
            id="underscores-in-outcome-and-facet",
        ),
        pytest.param(
            "some/dir/incidence_mean.and.interval_unfaceted.json",
            FragmentFilename("incidence", "mean.and.interval", "none"),
            id="path",
        ),
        pytest.param("broken.json", None, id="no-match"),
        pytest.param(
            "incidence_mean.and.interval_unfaceted.csv", None, id="wrong-extension"
        ),
        pytest.param("incidence_mean_unfaceted.json", None, id="unknown-statistic"),
        pytest.param(
            "incidence_mean.and.interval_facet_.json", None, id="empty-facet"
        ),
    ),
)
def test_parse_fragment_filename(filename, exp):
    assert parse_fragment_filename(filename) == exp


def test_assert_is_known_statistic():
    assert_is_known_statistic("median.and.interval")

    with pytest.raises(
        UnrecognisedValueError,
        match=re.escape(
            "'mean.and.intervals' is not a recognised value for statistic. "
            "Did you mean 'mean.and.interval'"
        ),
    ):
        assert_is_known_statistic("mean.and.intervals")


def test_get_fragment_metadata_missing():
    with pytest.raises(MalformedFragmentError, match="no metadata block"):
        get_fragment_metadata({"sim": [], "obs": {}})


def test_get_records_normalises_empty():
    fragment = create_fragment(sim=None, obs=None)

    assert get_sim_records(fragment) == []
    assert get_obs_records(fragment) == []


@pytest.mark.parametrize(
    "statistic, sim, exp",
    (
        pytest.param(
            "mean.and.interval",
            [create_sim_record(2020, 1.0)],
            RecordKind.SUMMARY_STATISTIC,
            id="summary",
        ),
        pytest.param(
            "individual.simulation",
            [create_sim_record(2020, 1.0)],
            RecordKind.INDIVIDUAL_DRAW,
            id="statistic-decides",
        ),
        pytest.param(
            "mean.and.interval",
            [create_sim_record(2020, 1.0, sim="1")],
            RecordKind.INDIVIDUAL_DRAW,
            id="draw-identity-decides",
        ),
        pytest.param(
            "mean.and.interval",
            None,
            RecordKind.SUMMARY_STATISTIC,
            id="no-data",
        ),
    ),
)
def test_get_record_kind(statistic, sim, exp):
    assert get_record_kind(create_fragment(sim=sim, statistic=statistic)) == exp

"""
Summaries of aggregates, used for the map hover cards

Each geography gets a small record of headline metrics:
current diagnosed prevalence and viral suppression
plus projected incidence with and without the cessation of funding.
These are collected into a single summaries document.

Summaries can only be created once all the aggregates they read exist,
hence they take aggregates (or the paths to aggregate files) as input
rather than reading from a location which may still be being written.
"""

from __future__ import annotations

import json
import math
import multiprocessing
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any

import pandas as pd
from attrs import define, field, validators
from loguru import logger
from pandas_openscm.parallelisation import ParallelOpConfig, apply_op_parallel_progress

from jheem_plot_data.aggregation import SkippedItem, get_generation_time
from jheem_plot_data.fragments import (
    BASELINE_SIMSET,
    MEAN_AND_INTERVAL,
    NO_FACET,
    assert_is_known_statistic,
    get_sim_records,
)
from jheem_plot_data.geographies import GeographyRegistry
from jheem_plot_data.io import load_json, write_json
from jheem_plot_data.store import assert_is_aggregate
from jheem_plot_data.typing import AggregateDict

SUMMARIES_DESCRIPTION = (
    "Summary metrics extracted from JHEEM model projections for map hover cards"
)
"""
Description written into summaries documents
"""

SUMMARIES_DATA_SOURCE = "JHEEM model output via prepare_plot_local()"
"""
Data source written into summaries documents
"""

PROJECTION_MODES: tuple[str, ...] = ("point", "cumulative")
"""
Supported ways of calculating the projected incidence
"""


@define(frozen=True)
class MetricValue:
    """
    A value with its interval
    """

    value: float
    lower: float
    upper: float


def round_half_up(value: float) -> int:
    """
    Round to the nearest whole number, with halves rounded up

    Python's `round` rounds halves to even,
    which would give different results to the rounding used on the front-end.
    """
    return int(math.floor(value + 0.5))


def round_rate(value: float) -> float:
    """
    Round a rate to one decimal place, with halves rounded up

    The exact value of the float is rounded,
    which gives the same results as the front-end's `toFixed(1)`
    (e.g. 85.25 becomes 85.3).
    """
    return float(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def get_unfaceted_sim(
    aggregate: AggregateDict,
    scenario: str,
    outcome: str,
    statistic: str = MEAN_AND_INTERVAL,
) -> pd.DataFrame | None:
    """
    Get the unfaceted simulated data for a given scenario and outcome

    Parameters
    ----------
    aggregate
        Aggregate from which to get the data

    scenario
        Scenario

    outcome
        Outcome

    statistic
        Statistic

    Returns
    -------
    :
        Simulated data, one row per record.
        `None` if there is no fragment or it has no simulated data.
    """
    fragment = (
        aggregate["data"]
        .get(scenario, {})
        .get(outcome, {})
        .get(statistic, {})
        .get(NO_FACET)
    )
    if fragment is None:
        return None

    sim = get_sim_records(fragment)
    if not sim:
        return None

    res = pd.DataFrame(sim)
    if not {"year", "value", "simset"}.issubset(res.columns):
        logger.warning(
            f"Simulated data for {scenario}/{outcome}/{statistic} "
            f"is missing required columns, available columns: {res.columns.tolist()}"
        )
        return None

    return res


def sum_to_metric_value(sim: pd.DataFrame) -> MetricValue:
    """
    Sum simulated records into a single metric value

    Where lower or upper bounds are missing, the value is used instead.

    Parameters
    ----------
    sim
        Records to sum

    Returns
    -------
    :
        Summed value, lower and upper bound
    """
    value = sim["value"].astype(float)
    bounds = {}
    for bound in ["lower", "upper"]:
        col = f"value.{bound}"
        if col in sim.columns:
            bounds[bound] = sim[col].astype(float).fillna(value)
        else:
            bounds[bound] = value

    return MetricValue(
        value=float(value.sum()),
        lower=float(bounds["lower"].sum()),
        upper=float(bounds["upper"].sum()),
    )


def extract_current_metric(  # noqa: PLR0913
    aggregate: AggregateDict,
    outcome: str,
    year: int,
    simset: str = BASELINE_SIMSET,
    statistic: str = MEAN_AND_INTERVAL,
    scenarios: Iterable[str] | None = None,
) -> MetricValue | None:
    """
    Extract a metric for a given year and simset

    Baseline values are the same in all scenarios,
    so we take them from whichever scenario has them.
    The rule is 'first scenario with a matching point':
    scenarios are searched in order of preference
    and the first scenario whose unfaceted data
    has a record for both `year` and `simset` is used.
    Scenarios which have no data, or no matching record, are passed over.

    Parameters
    ----------
    aggregate
        Aggregate from which to extract the metric

    outcome
        Outcome to extract

    year
        Year to extract

    simset
        Simset to extract

    statistic
        Statistic from which to extract the metric

    scenarios
        Scenarios to search, in order of preference.

        If not supplied, we use the order in the aggregate's metadata.

    Returns
    -------
    :
        Extracted metric or `None` if no scenario has a matching record
    """
    if scenarios is None:
        scenarios = aggregate["metadata"]["scenarios"]

    for scenario in scenarios:
        sim = get_unfaceted_sim(aggregate, scenario, outcome, statistic)
        if sim is None:
            continue

        matching = sim.loc[(sim["year"] == year) & (sim["simset"] == simset)]
        if matching.empty:
            continue

        return sum_to_metric_value(matching.iloc[:1])

    return None


def extract_cessation_metric(
    aggregate: AggregateDict,
    outcome: str,
    year: int,
    scenario: str = "cessation",
    statistic: str = MEAN_AND_INTERVAL,
    baseline_simset: str = BASELINE_SIMSET,
) -> MetricValue | None:
    """
    Extract the intervention value of a metric in a given scenario

    Unlike [extract_current_metric][(m).], only `scenario` is searched
    because intervention values are specific to each scenario.

    Parameters
    ----------
    aggregate
        Aggregate from which to extract the metric

    outcome
        Outcome to extract

    year
        Year to extract

    scenario
        Scenario from which to extract the intervention value

    statistic
        Statistic from which to extract the metric

    baseline_simset
        Simset of the baseline arm (any other simset is the intervention)

    Returns
    -------
    :
        Extracted metric or `None` if there is no matching record
    """
    sim = get_unfaceted_sim(aggregate, scenario, outcome, statistic)
    if sim is None:
        return None

    matching = sim.loc[(sim["year"] == year) & (sim["simset"] != baseline_simset)]
    if matching.empty:
        return None

    return sum_to_metric_value(matching.iloc[:1])


def extract_cumulative_metric(  # noqa: PLR0913
    aggregate: AggregateDict,
    outcome: str,
    start_year: int,
    end_year: int,
    simset: str = BASELINE_SIMSET,
    statistic: str = MEAN_AND_INTERVAL,
    scenarios: Iterable[str] | None = None,
) -> MetricValue | None:
    """
    Extract a metric summed over a (inclusive) range of years

    The same 'first scenario with a matching point' rule as
    [extract_current_metric][(m).] is used.

    Parameters
    ----------
    aggregate
        Aggregate from which to extract the metric

    outcome
        Outcome to extract

    start_year
        First year to include in the sum

    end_year
        Last year to include in the sum

    simset
        Simset to extract

    statistic
        Statistic from which to extract the metric

    scenarios
        Scenarios to search, in order of preference.

    Returns
    -------
    :
        Summed metric or `None` if no scenario has matching records
    """
    if scenarios is None:
        scenarios = aggregate["metadata"]["scenarios"]

    for scenario in scenarios:
        sim = get_unfaceted_sim(aggregate, scenario, outcome, statistic)
        if sim is None:
            continue

        matching = sim.loc[
            sim["year"].between(start_year, end_year) & (sim["simset"] == simset)
        ]
        if matching.empty:
            continue

        return sum_to_metric_value(matching)

    return None


def extract_cumulative_cessation_metric(  # noqa: PLR0913
    aggregate: AggregateDict,
    outcome: str,
    start_year: int,
    end_year: int,
    scenario: str = "cessation",
    statistic: str = MEAN_AND_INTERVAL,
    baseline_simset: str = BASELINE_SIMSET,
) -> MetricValue | None:
    """
    Extract the intervention value of a metric summed over a range of years

    Parameters
    ----------
    aggregate
        Aggregate from which to extract the metric

    outcome
        Outcome to extract

    start_year
        First year to include in the sum

    end_year
        Last year to include in the sum

    scenario
        Scenario from which to extract the intervention values

    statistic
        Statistic from which to extract the metric

    baseline_simset
        Simset of the baseline arm (any other simset is the intervention)

    Returns
    -------
    :
        Summed metric or `None` if there are no matching records
    """
    sim = get_unfaceted_sim(aggregate, scenario, outcome, statistic)
    if sim is None:
        return None

    matching = sim.loc[
        sim["year"].between(start_year, end_year) & (sim["simset"] != baseline_simset)
    ]
    if matching.empty:
        return None

    return sum_to_metric_value(matching)


@define
class SummaryConfig:
    """
    Configuration of summary extraction
    """

    current_year: int = 2024
    """
    Year used for the 'current' status metrics (prevalence and suppression)
    """

    projection_mode: str = field(
        default="point", validator=validators.in_(PROJECTION_MODES)
    )
    """
    How projected incidence is calculated

    - "point": the value in `projection_year` (used for cities)
    - "cumulative": the sum over the intervention period,
      `intervention_start_year` to `intervention_end_year` inclusive
      (used for states)
    """

    projection_year: int = 2030
    """
    Year used for projections if `projection_mode` is "point"
    """

    intervention_start_year: int = 2026
    """
    First year of the intervention period if `projection_mode` is "cumulative"
    """

    intervention_end_year: int = field(default=2031)
    """
    Last year of the intervention period if `projection_mode` is "cumulative"
    """

    cessation_scenario: str = "cessation"
    """
    Scenario which represents the cessation of funding
    """

    baseline_simset: str = BASELINE_SIMSET
    """
    Simset of the baseline arm
    """

    statistic: str = field(default=MEAN_AND_INTERVAL)
    """
    Statistic from which to extract the metrics
    """

    scenario_preference: tuple[str, ...] | None = None
    """
    Order in which to search scenarios for baseline values

    If `None`, the order in each aggregate's metadata is used.
    """

    prevalence_outcome: str = "diagnosed.prevalence"
    """
    Outcome which holds diagnosed prevalence
    """

    suppression_outcome: str = "suppression"
    """
    Outcome which holds the viral suppression rate
    """

    incidence_outcome: str = "incidence"
    """
    Outcome which holds incidence
    """

    @statistic.validator
    def validate_statistic(self, attribute: Any, value: str) -> None:
        """
        Validate the statistic value
        """
        assert_is_known_statistic(value)

    @intervention_end_year.validator
    def validate_intervention_end_year(self, attribute: Any, value: int) -> None:
        """
        Validate the intervention end year value
        """
        if value < self.intervention_start_year:
            msg = (
                f"intervention_end_year ({value}) must not be before "
                f"intervention_start_year ({self.intervention_start_year})"
            )
            raise ValueError(msg)

    @property
    def target_year(self) -> int:
        """
        Year to which the projections refer
        """
        if self.projection_mode == "cumulative":
            return self.intervention_end_year

        return self.projection_year


@define
class StatusMetric:
    """
    Metric describing the current status of a geography
    """

    value: float
    lower: float
    upper: float
    year: int
    label: str
    source: str = "model"

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a dictionary with the names used in the summaries document
        """
        return {
            "value": self.value,
            "lower": self.lower,
            "upper": self.upper,
            "year": self.year,
            "label": self.label,
            "source": self.source,
        }


@define
class ProjectionMetric:
    """
    Metric describing a projection for a geography
    """

    value: float
    lower: float
    upper: float
    year: int
    label: str

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a dictionary with the names used in the summaries document
        """
        return {
            "value": self.value,
            "lower": self.lower,
            "upper": self.upper,
            "year": self.year,
            "label": self.label,
        }


@define
class Impact:
    """
    Impact of the cessation of funding
    """

    cessation_increase_percent: int | None
    """
    Percentage increase in incidence

    `None` if the baseline incidence is zero
    (the percentage increase is undefined).
    """

    cessation_increase_absolute: int
    target_year: int
    headline: str
    start_year: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a dictionary with the names used in the summaries document
        """
        res: dict[str, Any] = {
            "cessationIncreasePercent": self.cessation_increase_percent,
            "cessationIncreaseAbsolute": self.cessation_increase_absolute,
            "targetYear": self.target_year,
        }
        if self.start_year is not None:
            res["startYear"] = self.start_year

        res["headline"] = self.headline

        return res


@define
class LocationSummary:
    """
    Summary of a single geography
    """

    name: str
    short_name: str
    coordinates: tuple[float, float]
    """
    [longitude, latitude]
    """

    diagnosed_prevalence: StatusMetric
    suppression_rate: StatusMetric
    incidence_baseline: ProjectionMetric
    incidence_cessation: ProjectionMetric
    impact: Impact

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a dictionary with the names used in the summaries document
        """
        return {
            "name": self.name,
            "shortName": self.short_name,
            "coordinates": list(self.coordinates),
            "metrics": {
                "diagnosedPrevalence": self.diagnosed_prevalence.to_dict(),
                "suppressionRate": self.suppression_rate.to_dict(),
                "incidenceBaseline": self.incidence_baseline.to_dict(),
                "incidenceCessation": self.incidence_cessation.to_dict(),
            },
            "impact": self.impact.to_dict(),
        }


def get_cessation_impact(
    incidence_baseline: float,
    incidence_cessation: float,
    config: SummaryConfig,
) -> Impact:
    """
    Get the impact of the cessation of funding

    Parameters
    ----------
    incidence_baseline
        Baseline incidence

    incidence_cessation
        Incidence if funding stops

    config
        Configuration

    Returns
    -------
    :
        Impact
    """
    increase = incidence_cessation - incidence_baseline
    increase_absolute = round_half_up(increase)

    if incidence_baseline == 0:
        increase_percent = None
    else:
        increase_percent = round_half_up(increase / incidence_baseline * 100)

    if config.projection_mode == "cumulative":
        start_year: int | None = config.intervention_start_year
        headline = (
            "Relative increase in new HIV infections if funding stops, "
            f"{config.intervention_start_year}-{config.intervention_end_year}"
        )

    else:
        start_year = None
        if increase_percent is None:
            headline = (
                f"Funding loss could add {increase_absolute} new HIV cases "
                f"by {config.projection_year}"
            )
        else:
            headline = (
                f"Funding loss could increase new HIV cases {increase_percent}% "
                f"by {config.projection_year}"
            )

    return Impact(
        cessation_increase_percent=increase_percent,
        cessation_increase_absolute=increase_absolute,
        target_year=config.target_year,
        start_year=start_year,
        headline=headline,
    )


def get_projected_incidence(
    aggregate: AggregateDict, config: SummaryConfig
) -> tuple[MetricValue | None, MetricValue | None]:
    """
    Get the projected incidence with and without the cessation of funding

    Parameters
    ----------
    aggregate
        Aggregate from which to extract the values

    config
        Configuration

    Returns
    -------
    :
        Baseline incidence and incidence if funding stops
        (`None` if they cannot be found)
    """
    if config.projection_mode == "cumulative":
        baseline = extract_cumulative_metric(
            aggregate,
            config.incidence_outcome,
            start_year=config.intervention_start_year,
            end_year=config.intervention_end_year,
            simset=config.baseline_simset,
            statistic=config.statistic,
            scenarios=config.scenario_preference,
        )
        cessation = extract_cumulative_cessation_metric(
            aggregate,
            config.incidence_outcome,
            start_year=config.intervention_start_year,
            end_year=config.intervention_end_year,
            scenario=config.cessation_scenario,
            statistic=config.statistic,
            baseline_simset=config.baseline_simset,
        )

    else:
        baseline = extract_current_metric(
            aggregate,
            config.incidence_outcome,
            year=config.projection_year,
            simset=config.baseline_simset,
            statistic=config.statistic,
            scenarios=config.scenario_preference,
        )
        cessation = extract_cessation_metric(
            aggregate,
            config.incidence_outcome,
            year=config.projection_year,
            scenario=config.cessation_scenario,
            statistic=config.statistic,
            baseline_simset=config.baseline_simset,
        )

    return baseline, cessation


def get_projection_labels(config: SummaryConfig) -> tuple[str, str]:
    """
    Get the labels of the baseline and cessation incidence metrics
    """
    if config.projection_mode == "cumulative":
        period = f"{config.intervention_start_year}-{config.intervention_end_year}"
        return (
            f"Cumulative new HIV infections (baseline, {period})",
            f"Cumulative new HIV infections (if funding stops, {period})",
        )

    return (
        "Projected new HIV cases (baseline)",
        "Projected new HIV cases (if funding stops)",
    )


def create_location_summary(
    aggregate: AggregateDict,
    registry: GeographyRegistry,
    config: SummaryConfig,
) -> LocationSummary | SkippedItem:
    """
    Create the summary of a single geography

    Parameters
    ----------
    aggregate
        Aggregate of the geography

    registry
        Registry from which to get the geography's coordinates and names

    config
        Configuration

    Returns
    -------
    :
        Summary or, if the geography cannot be summarised,
        the reason why it was skipped
    """
    code = aggregate["metadata"]["city"]
    label = aggregate["metadata"].get("city_label") or code

    coordinates = registry.get_coordinates(code)
    if coordinates is None:
        return SkippedItem(item=code, reason="no coordinates in the geography registry")

    extract_baseline = dict(
        year=config.current_year,
        simset=config.baseline_simset,
        statistic=config.statistic,
        scenarios=config.scenario_preference,
    )
    prevalence = extract_current_metric(
        aggregate, config.prevalence_outcome, **extract_baseline
    )
    suppression = extract_current_metric(
        aggregate, config.suppression_outcome, **extract_baseline
    )
    incidence_baseline, incidence_cessation = get_projected_incidence(aggregate, config)

    found = {
        "prevalence": prevalence,
        "suppression": suppression,
        "incidence_baseline": incidence_baseline,
        "incidence_cessation": incidence_cessation,
    }
    missing = [k for k, v in found.items() if v is None]
    if (
        missing
        # Keep mypy happy
        or prevalence is None
        or suppression is None
        or incidence_baseline is None
        or incidence_cessation is None
    ):
        return SkippedItem(item=code, reason=f"missing metrics: {missing}")

    name = registry.get_name(code) or label
    baseline_label, cessation_label = get_projection_labels(config)

    return LocationSummary(
        name=name,
        short_name=registry.get_short_name(code, name),
        coordinates=coordinates,
        diagnosed_prevalence=StatusMetric(
            value=round_half_up(prevalence.value),
            lower=round_half_up(prevalence.lower),
            upper=round_half_up(prevalence.upper),
            year=config.current_year,
            label="People living with diagnosed HIV",
        ),
        suppression_rate=StatusMetric(
            value=round_rate(suppression.value),
            lower=round_rate(suppression.lower),
            upper=round_rate(suppression.upper),
            year=config.current_year,
            label="Viral suppression rate",
        ),
        incidence_baseline=ProjectionMetric(
            value=round_half_up(incidence_baseline.value),
            lower=round_half_up(incidence_baseline.lower),
            upper=round_half_up(incidence_baseline.upper),
            year=config.target_year,
            label=baseline_label,
        ),
        incidence_cessation=ProjectionMetric(
            value=round_half_up(incidence_cessation.value),
            lower=round_half_up(incidence_cessation.lower),
            upper=round_half_up(incidence_cessation.upper),
            year=config.target_year,
            label=cessation_label,
        ),
        impact=get_cessation_impact(
            incidence_baseline=incidence_baseline.value,
            incidence_cessation=incidence_cessation.value,
            config=config,
        ),
    )


def summarise_location(
    aggregate: AggregateDict,
    registry: GeographyRegistry,
    config: SummaryConfig | None = None,
) -> LocationSummary | None:
    """
    Summarise a single geography

    Parameters
    ----------
    aggregate
        Aggregate of the geography

    registry
        Registry from which to get the geography's coordinates and names

    config
        Configuration. If not supplied, the default configuration is used.

    Returns
    -------
    :
        Summary or `None` if the geography cannot be summarised
        (a warning is logged in this case)
    """
    if config is None:
        config = SummaryConfig()

    res = create_location_summary(aggregate, registry, config)
    if isinstance(res, SkippedItem):
        logger.warning(f"Skipping {res.item}: {res.reason}")
        return None

    return res


def assert_is_summarisable_aggregate(value: Any, description: str) -> None:
    """
    Assert that a value has the structure needed to summarise it

    On top of the checks of [assert_is_aggregate][jheem_plot_data.store.],
    the metadata must give the geography's code and the list of scenarios.

    Parameters
    ----------
    value
        Value to check

    description
        Description of the value, used in the error message

    Raises
    ------
    ValueError
        `value` cannot be summarised
    """
    assert_is_aggregate(value, description=description)

    metadata = value["metadata"]
    if not isinstance(metadata.get("city"), str):
        msg = f"Invalid aggregate structure: {description} (no geography code)"
        raise ValueError(msg)

    if not isinstance(metadata.get("scenarios"), list):
        msg = f"Invalid aggregate structure: {description} (no list of scenarios)"
        raise ValueError(msg)


def summarise_aggregate(
    aggregate: Any,
    registry: GeographyRegistry,
    config: SummaryConfig,
    description: str,
) -> tuple[str, LocationSummary | SkippedItem]:
    """
    Summarise an aggregate, skipping it if it is malformed

    Parameters
    ----------
    aggregate
        Aggregate to summarise

    registry
        Registry from which to get the geography's coordinates and names

    config
        Configuration

    description
        Description of the aggregate (e.g. its path),
        used if the aggregate does not give its geography code

    Returns
    -------
    :
        Geography code (or `description`, if the aggregate has no code)
        and summary or the reason why the aggregate was skipped
    """
    try:
        assert_is_summarisable_aggregate(aggregate, description=description)
    except ValueError as exc:
        return description, SkippedItem(item=description, reason=str(exc))

    code = aggregate["metadata"]["city"]
    try:
        res = create_location_summary(aggregate, registry, config)
    except (KeyError, TypeError, AttributeError) as exc:
        return code, SkippedItem(item=code, reason=f"malformed aggregate: {exc!r}")

    return code, res


def summarise_aggregate_file(
    path: Path, registry: GeographyRegistry, config: SummaryConfig
) -> tuple[str, LocationSummary | SkippedItem]:
    """
    Summarise the geography in an aggregate file

    Parameters
    ----------
    path
        Path to the aggregate file

    registry
        Registry from which to get the geography's coordinates and names

    config
        Configuration

    Returns
    -------
    :
        Geography code (or the path, if the file could not be read
        or does not give the code)
        and summary or the reason why the geography was skipped
    """
    try:
        aggregate = load_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        return str(path), SkippedItem(
            item=str(path), reason=f"could not read aggregate: {exc}"
        )

    return summarise_aggregate(aggregate, registry, config, description=str(path))


def create_summaries_document(
    summaries: Mapping[str, LocationSummary],
    collection_key: str = "cities",
) -> dict[str, Any]:
    """
    Create a summaries document

    Parameters
    ----------
    summaries
        Summaries, keyed by geography code

    collection_key
        Key under which to store the summaries e.g. "cities" or "states"

    Returns
    -------
    :
        Summaries document

        Summaries are sorted by geography code so that the output is deterministic.
    """
    return {
        "generated": get_generation_time(),
        "description": SUMMARIES_DESCRIPTION,
        "dataSource": SUMMARIES_DATA_SOURCE,
        collection_key: {code: summaries[code].to_dict() for code in sorted(summaries)},
    }


@define
class SummarisationResult:
    """
    Result of summarising many geographies
    """

    document: dict[str, Any]
    """
    Summaries document
    """

    skipped: list[SkippedItem] = field(factory=list)
    """
    Geographies (or files) which were skipped
    """


@define
class LocationSummariser:
    """
    Summariser of many geographies
    """

    registry: GeographyRegistry
    """
    Registry from which to get the geographies' coordinates and names
    """

    config: SummaryConfig = field(factory=SummaryConfig)
    """
    Configuration of the extraction
    """

    collection_key: str = "cities"
    """
    Key under which to store the summaries in the output document
    """

    progress: bool = False
    """
    Should progress bars be shown?
    """

    n_processes: int | None = multiprocessing.cpu_count()
    """
    Number of processes to use for parallel processing.

    Set to `None` to process in serial.
    """

    def _collect(
        self, results: Iterable[tuple[str, LocationSummary | SkippedItem]]
    ) -> SummarisationResult:
        summaries = {}
        skipped = []
        for code, res in results:
            if isinstance(res, SkippedItem):
                logger.warning(f"Skipping {res.item}: {res.reason}")
                skipped.append(res)
            else:
                summaries[code] = res
                logger.debug(
                    f"Summarised {res.short_name}: "
                    f"{res.diagnosed_prevalence.value:,} PLWH, "
                    f"{res.suppression_rate.value}% suppression"
                )

        logger.info(
            f"Created {len(summaries)} summaries, skipped {len(skipped)} geographies"
        )

        return SummarisationResult(
            document=create_summaries_document(summaries, self.collection_key),
            skipped=skipped,
        )

    def __call__(self, aggregate_files: Iterable[Path]) -> SummarisationResult:
        """
        Summarise

        Parameters
        ----------
        aggregate_files
            Aggregate files to summarise

            All of these must have been completely written
            before calling this method.

        Returns
        -------
        :
            Summaries document and skipped geographies
        """
        results = apply_op_parallel_progress(
            func_to_call=summarise_aggregate_file,
            iterable_input=[Path(p) for p in aggregate_files],
            parallel_op_config=ParallelOpConfig.from_user_facing(
                progress=self.progress,
                max_workers=self.n_processes,
                progress_results_kwargs=dict(desc="Geographies to summarise"),
            ),
            registry=self.registry,
            config=self.config,
        )

        return self._collect(results)

    def summarise_aggregates(
        self, aggregates: Iterable[AggregateDict]
    ) -> SummarisationResult:
        """
        Summarise aggregates which are already in memory

        Parameters
        ----------
        aggregates
            Aggregates to summarise

        Returns
        -------
        :
            Summaries document and skipped geographies
        """
        return self._collect(
            summarise_aggregate(
                aggregate, self.registry, self.config, description=f"aggregates[{i}]"
            )
            for i, aggregate in enumerate(aggregates)
        )


def write_single_summary(
    code: str, summary: LocationSummary, output_dir: Path
) -> Path:
    """
    Write the summary of a single geography

    Writing single summaries, then combining them with
    [combine_summary_documents][(m).], means that only the (small)
    summaries have to be passed between jobs, rather than the full aggregates.

    Parameters
    ----------
    code
        Code of the geography

    summary
        Summary to write

    output_dir
        Directory in which to write

    Returns
    -------
    :
        Path of the written file, `{code}-summary.json`
    """
    return write_json(summary.to_dict(), Path(output_dir) / f"{code}-summary.json")


def combine_summary_documents(
    summary_files: Iterable[Path], collection_key: str = "states"
) -> dict[str, Any]:
    """
    Combine single summaries into a summaries document

    Parameters
    ----------
    summary_files
        Files written by [write_single_summary][(m).]

        Files which don't exist or can't be read are skipped with a warning.

    collection_key
        Key under which to store the summaries e.g. "cities" or "states"

    Returns
    -------
    :
        Summaries document
    """
    collection: dict[str, Any] = {}
    for summary_file in summary_files:
        summary_file = Path(summary_file)
        if not summary_file.exists():
            logger.warning(f"Summary file not found, skipping: {summary_file}")
            continue

        try:
            summary = load_json(summary_file)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Error reading {summary_file}, skipping: {exc}")
            continue

        code = summary_file.name.removesuffix("-summary.json")
        collection[code] = summary
        logger.debug(f"Combined {summary.get('name')} ({code})")

    return {
        "generated": get_generation_time(),
        "description": SUMMARIES_DESCRIPTION,
        "dataSource": SUMMARIES_DATA_SOURCE,
        collection_key: {code: collection[code] for code in sorted(collection)},
    }

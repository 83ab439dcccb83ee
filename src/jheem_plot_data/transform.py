"""
Transformation of fragments into chart-ready facet panels

The data comes pre-summarised from the model-execution process,
so here we only re-shape it:

1. split the records into one panel per facet value
1. merge baseline and intervention records by year
   (or, for individual simulations, group records into one line per draw)
1. attach the observations which belong to each panel

Nothing here performs I/O or holds state between calls.
Callers which want to avoid re-computation should cache the results themselves,
e.g. keyed by (scenario, outcome, statistic, facet).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from attrs import define, field

from jheem_plot_data.fragments import (
    BASELINE_SIMSET,
    FACET_DIMENSION_KEYS,
    NO_FACET,
    RecordKind,
    get_fragment_metadata,
    get_obs_records,
    get_record_kind,
    get_sim_records,
    has_facet_values,
)
from jheem_plot_data.typing import PlotFragmentDict, RecordDict

FACET_KEY_SEPARATOR = " | "
"""
Separator used to join facet values into a composite facet key
"""

UNKNOWN_FACET_KEY = "unknown"
"""
Composite facet key for simulated records which have no facet values
"""

ALL_FACET_KEY = "all"
"""
Facet key of the single panel of unfaceted data

Also used for observations which have no facet values.
"""

DEFAULT_YEAR_RANGE: tuple[int, int] = (2010, 2035)
"""
Year range used when there is no data
"""

DEFAULT_VALUE_RANGE: tuple[float, float] = (0.0, 100.0)
"""
Value range used when there is no data
"""

FACET_LABELS: dict[str, str] = {
    # Sex
    "female": "Female",
    "male": "Male",
    "msm": "MSM",
    "heterosexual_male": "Heterosexual Male",
    # Race
    "black": "Black",
    "hispanic": "Hispanic",
    "other": "Other",
    # Age values are already formatted e.g. "13-24 years"
}
"""
Display labels of facet values
"""


@define
class ChartDataPoint:
    """
    Baseline and intervention values for a single year
    """

    year: int
    value: float | None = None
    lower: float | None = None
    upper: float | None = None
    baseline_value: float | None = None
    baseline_lower: float | None = None
    baseline_upper: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a dictionary with the names used by the charts

        Values which are not set are not included.
        """
        res: dict[str, Any] = {"year": self.year}
        for key, value in (
            ("value", self.value),
            ("lower", self.lower),
            ("upper", self.upper),
            ("baselineValue", self.baseline_value),
            ("baselineLower", self.baseline_lower),
            ("baselineUpper", self.baseline_upper),
        ):
            if value is not None:
                res[key] = value

        return res


@define
class ChartObservation:
    """
    An observed data point
    """

    year: int
    value: float
    source: str | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a dictionary with the names used by the charts
        """
        res: dict[str, Any] = {
            "year": self.year,
            "value": self.value,
            "source": self.source,
        }
        if self.url is not None:
            res["url"] = self.url

        return res


@define
class SimulationPoint:
    """
    A single year's value of an individual simulation
    """

    year: int
    value: float


@define
class SimulationLine:
    """
    Trajectory of one individual simulation (draw)
    """

    sim_id: str
    simset: str
    points: list[SimulationPoint] = field(factory=list)
    """
    Points, sorted by year
    """

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a dictionary with the names used by the charts
        """
        return {
            "simId": self.sim_id,
            "simset": self.simset,
            "points": [{"year": p.year, "value": p.value} for p in self.points],
        }


@define
class FacetPanel:
    """
    Data for a single chart panel
    """

    facet_value: str
    """
    Facet value (composite facet key) e.g. "male" or "all"
    """

    facet_label: str
    """
    Display label
    """

    data: list[ChartDataPoint] = field(factory=list)
    """
    Merged baseline and intervention data

    Always empty for individual simulations.
    """

    observations: list[ChartObservation] = field(factory=list)

    is_individual_simulation: bool = False

    individual_simulations: list[SimulationLine] | None = None
    """
    Individual simulation lines

    Only set for individual simulations.
    """

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a dictionary with the names used by the charts
        """
        res: dict[str, Any] = {
            "facetValue": self.facet_value,
            "facetLabel": self.facet_label,
            "data": [d.to_dict() for d in self.data],
            "observations": [o.to_dict() for o in self.observations],
            "isIndividualSimulation": self.is_individual_simulation,
        }
        if self.individual_simulations is not None:
            res["individualSimulations"] = [
                line.to_dict() for line in self.individual_simulations
            ]

        return res


def get_composite_facet_key(
    record: RecordDict, fallback: str = UNKNOWN_FACET_KEY
) -> str:
    """
    Get the composite facet key of a record

    Parameters
    ----------
    record
        Record

    fallback
        Value to return if the record has no facet values

        For simulated records this should be "unknown",
        for observations "all".

    Returns
    -------
    :
        Facet values joined with `" | "` e.g. `"13-24 years | black | msm"`
    """
    parts = [record[k] for k in FACET_DIMENSION_KEYS if record.get(k)]
    if not parts:
        return fallback

    return FACET_KEY_SEPARATOR.join(str(v) for v in parts)


def format_facet_label(value: str) -> str:
    """
    Format a facet value for display

    Values we don't know about are returned unchanged.
    """
    return FACET_LABELS.get(value, value)


def transform_observations(obs: Iterable[RecordDict]) -> list[ChartObservation]:
    """
    Transform observations into chart observations

    Years which are given as strings are converted to integers.
    """
    return [
        ChartObservation(
            year=int(o["year"]) if isinstance(o["year"], str) else o["year"],
            value=o["value"],
            source=o.get("source"),
            url=o.get("data_url"),
        )
        for o in obs
    ]


def merge_simulation_data(
    sim: Iterable[RecordDict], baseline_simset: str = BASELINE_SIMSET
) -> list[ChartDataPoint]:
    """
    Merge baseline and intervention records by year

    Only one intervention arm per year can be represented.
    If there is more than one non-baseline record for a year,
    the last one wins.

    Parameters
    ----------
    sim
        Simulated records (summary statistics, not individual draws)

    baseline_simset
        Simset of the baseline arm

    Returns
    -------
    :
        One point per year, sorted by year
    """
    by_year: dict[int, ChartDataPoint] = {}
    for record in sim:
        year = record["year"]
        point = by_year.setdefault(year, ChartDataPoint(year=year))
        if record["simset"] == baseline_simset:
            point.baseline_value = record["value"]
            point.baseline_lower = record.get("value.lower")
            point.baseline_upper = record.get("value.upper")
        else:
            point.value = record["value"]
            point.lower = record.get("value.lower")
            point.upper = record.get("value.upper")

    return sorted(by_year.values(), key=lambda p: p.year)


def transform_individual_simulations(sim: Iterable[RecordDict]) -> list[SimulationLine]:
    """
    Group individual simulation records into one line per simset and draw

    Parameters
    ----------
    sim
        Simulated records (individual draws)

        Records without a draw identifier are grouped under "unknown",
        this indicates malformed upstream data.

    Returns
    -------
    :
        Lines, in the order in which they were first seen,
        each with its points sorted by year
    """
    lines: dict[tuple[str, str], SimulationLine] = {}
    for record in sim:
        sim_id = record.get("sim")
        sim_id = UNKNOWN_FACET_KEY if sim_id is None else str(sim_id)
        simset = record["simset"]
        line = lines.setdefault(
            (simset, sim_id), SimulationLine(sim_id=sim_id, simset=simset)
        )
        line.points.append(SimulationPoint(year=record["year"], value=record["value"]))

    for line in lines.values():
        line.points.sort(key=lambda p: p.year)

    return list(lines.values())


def create_panel(
    facet_value: str,
    facet_label: str,
    sim: list[RecordDict],
    observations: list[ChartObservation],
    record_kind: RecordKind,
) -> FacetPanel:
    """
    Create a single facet panel

    Parameters
    ----------
    facet_value
        Facet value (composite facet key)

    facet_label
        Display label

    sim
        Simulated records which belong to the panel

    observations
        Observations which belong to the panel

    record_kind
        Kind of the simulated records

    Returns
    -------
    :
        Facet panel
    """
    if record_kind is RecordKind.INDIVIDUAL_DRAW:
        return FacetPanel(
            facet_value=facet_value,
            facet_label=facet_label,
            data=[],
            observations=observations,
            is_individual_simulation=True,
            individual_simulations=transform_individual_simulations(sim),
        )

    return FacetPanel(
        facet_value=facet_value,
        facet_label=facet_label,
        data=merge_simulation_data(sim),
        observations=observations,
        is_individual_simulation=False,
    )


def transform_plot_data(fragment: PlotFragmentDict) -> list[FacetPanel]:
    """
    Transform a fragment into chart-ready facet panels

    Parameters
    ----------
    fragment
        Fragment to transform

    Returns
    -------
    :
        Facet panels, sorted by facet value.

        If the fragment has no simulated data, this is empty.
        If the fragment is not faceted, there is a single panel
        with facet value "all".

    Raises
    ------
    MalformedFragmentError
        The fragment has no metadata
    """
    metadata = get_fragment_metadata(fragment)

    sim = get_sim_records(fragment)
    if not sim:
        return []

    obs = get_obs_records(fragment)
    record_kind = get_record_kind(fragment)

    is_faceted = metadata.get("facet") != NO_FACET and has_facet_values(sim[0])
    if not is_faceted:
        return [
            create_panel(
                facet_value=ALL_FACET_KEY,
                facet_label="All",
                sim=sim,
                observations=transform_observations(obs),
                record_kind=record_kind,
            )
        ]

    sim_by_facet: dict[str, list[RecordDict]] = {}
    for record in sim:
        sim_by_facet.setdefault(get_composite_facet_key(record), []).append(record)

    obs_by_facet: dict[str, list[RecordDict]] = {}
    for record in obs:
        obs_by_facet.setdefault(
            get_composite_facet_key(record, fallback=ALL_FACET_KEY), []
        ).append(record)

    return [
        create_panel(
            facet_value=facet_value,
            facet_label=format_facet_label(facet_value),
            sim=sim_by_facet[facet_value],
            observations=transform_observations(obs_by_facet.get(facet_value, [])),
            record_kind=record_kind,
        )
        for facet_value in sorted(sim_by_facet)
    ]


def year_range(points: Iterable[ChartDataPoint | SimulationPoint]) -> tuple[int, int]:
    """
    Get the range of years covered by some points (for the x-axis)

    Parameters
    ----------
    points
        Points

    Returns
    -------
    :
        Minimum and maximum year.
        If there are no points, [DEFAULT_YEAR_RANGE][(m).].
    """
    years = [p.year for p in points]
    if not years:
        return DEFAULT_YEAR_RANGE

    return (min(years), max(years))


def value_range(
    points: Iterable[ChartDataPoint],
    observations: Iterable[ChartObservation],
    include_baseline: bool,
    include_ci: bool,
    individual_lines: Iterable[SimulationLine] | None = None,
) -> tuple[float, float]:
    """
    Get the range of values which will be plotted (for the y-axis)

    Parameters
    ----------
    points
        Merged baseline and intervention points

    observations
        Observations

        These are always included.

    include_baseline
        Include baseline values (and baseline individual simulations)?

    include_ci
        Include lower and upper bounds?

    individual_lines
        Individual simulation lines

    Returns
    -------
    :
        Minimum and maximum of the values, each padded by 10% of the range.
        The minimum is never less than zero.
        If there are no values, [DEFAULT_VALUE_RANGE][(m).].
    """
    values: list[float] = []

    for p in points:
        to_include = [p.value]
        if include_ci:
            to_include.extend([p.lower, p.upper])

        if include_baseline:
            to_include.append(p.baseline_value)
            if include_ci:
                to_include.extend([p.baseline_lower, p.baseline_upper])

        values.extend(v for v in to_include if v is not None)

    if individual_lines is not None:
        for line in individual_lines:
            if not include_baseline and line.simset == BASELINE_SIMSET:
                continue

            values.extend(p.value for p in line.points)

    values.extend(o.value for o in observations)

    if not values:
        return DEFAULT_VALUE_RANGE

    min_value = min(values)
    max_value = max(values)
    padding = (max_value - min_value) * 0.1

    return (max(0.0, min_value - padding), max_value + padding)


@define
class ChartDisplayOptions:
    """
    Options which control what is displayed in a chart
    """

    show_confidence_interval: bool = True
    show_baseline: bool = True
    show_observations: bool = True

    def get_value_range(self, panel: FacetPanel) -> tuple[float, float]:
        """
        Get the range of values to display for a panel

        Parameters
        ----------
        panel
            Panel

        Returns
        -------
        :
            Range of values that will be plotted given these options
        """
        return value_range(
            panel.data,
            panel.observations if self.show_observations else [],
            include_baseline=self.show_baseline,
            include_ci=self.show_confidence_interval,
            individual_lines=panel.individual_simulations,
        )

    def get_year_range(self, panel: FacetPanel) -> tuple[int, int]:
        """
        Get the range of years to display for a panel
        """
        if panel.is_individual_simulation and panel.individual_simulations:
            return year_range(
                p for line in panel.individual_simulations for p in line.points
            )

        return year_range(panel.data)

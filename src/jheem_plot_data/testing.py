"""
Code to support our tests

This is here, rather than in our `tests` directory
because of the issues that come
when you turn your tests into a package using `__init__.py` files
(for details, see https://docs.pytest.org/en/7.1.x/explanation/goodpractices.html#choosing-an-import-mode).
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from jheem_plot_data.fragments import BASELINE_SIMSET, MEAN_AND_INTERVAL, NO_FACET
from jheem_plot_data.io import write_json
from jheem_plot_data.typing import AggregateDict, PlotFragmentDict, RecordDict


def create_sim_record(  # noqa: PLR0913
    year: int,
    value: float,
    simset: str = BASELINE_SIMSET,
    outcome: str = "incidence",
    lower: float | None = None,
    upper: float | None = None,
    **kwargs: Any,
) -> RecordDict:
    """
    Create a simulated record

    Extra keyword arguments are added to the record.
    Use `facet_by1` etc. to set facet values
    (the underscore is converted to a dot).
    """
    res: RecordDict = {
        "year": year,
        "value": value,
        "simset": simset,
        "outcome": outcome,
        "outcome.display.name": outcome.replace(".", " ").title(),
    }
    if lower is not None:
        res["value.lower"] = lower

    if upper is not None:
        res["value.upper"] = upper

    for key, v in kwargs.items():
        res[key.replace("_", ".", 1) if key.startswith("facet_") else key] = v

    return res


def create_fragment(  # noqa: PLR0913
    sim: Iterable[RecordDict] | None,
    obs: Iterable[RecordDict] | None = None,
    scenario: str = "cessation",
    outcome: str = "incidence",
    statistic: str = MEAN_AND_INTERVAL,
    facet: str = NO_FACET,
    geography_code: str = "C.12580",
    geography_label: str = "Baltimore-Columbia-Towson, MD",
    **metadata_kwargs: Any,
) -> PlotFragmentDict:
    """
    Create a fragment, as it would be written by the model-execution process
    """
    metadata = {
        "city": geography_code,
        "scenario": scenario,
        "outcome": outcome,
        "statistic": statistic,
        "facet": facet,
        "y_label": outcome,
        "plot_title": f"{geography_label} ({outcome})",
        "has_baseline": True,
        "generation_time": "2025-01-01T00:00:00.000Z",
        **metadata_kwargs,
    }

    return {
        "sim": None if sim is None else list(sim),
        "obs": {} if obs is None else list(obs),
        "metadata": metadata,
    }


def get_fragment_filename(outcome: str, statistic: str, facet: str) -> str:
    """
    Get the file name that the model-execution process would use for a fragment
    """
    facet_descriptor = "unfaceted" if facet == NO_FACET else f"facet_{facet}"

    return f"{outcome}_{statistic}_{facet_descriptor}.json"


def write_fragment(fragment: PlotFragmentDict, out_dir: Path) -> Path:
    """
    Write a fragment into a directory, using the scenario as a sub-directory
    """
    metadata = fragment["metadata"]
    filename = get_fragment_filename(
        metadata["outcome"], metadata["statistic"], metadata["facet"]
    )

    return write_json(fragment, Path(out_dir) / metadata["scenario"] / filename)


def create_aggregate(
    fragments: Iterable[PlotFragmentDict],
    geography_code: str = "C.12580",
    geography_label: str = "Baltimore-Columbia-Towson, MD",
    scenarios: list[str] | None = None,
) -> AggregateDict:
    """
    Create an aggregate directly from fragments, without going via disk

    Parameters
    ----------
    fragments
        Fragments to include

    geography_code
        Geography code

    geography_label
        Geography label

    scenarios
        Scenarios to write in the metadata (in this order).

        If not supplied, the sorted scenarios of `fragments` are used.
        Supplying this allows tests of the scenario search order.

    Returns
    -------
    :
        Aggregate
    """
    data: dict[str, Any] = {}
    for fragment in fragments:
        m = fragment["metadata"]
        data.setdefault(m["scenario"], {}).setdefault(m["outcome"], {}).setdefault(
            m["statistic"], {}
        )[m["facet"]] = fragment

    quadruples = [
        (scenario, outcome, statistic, facet)
        for scenario, outcomes in data.items()
        for outcome, statistics in outcomes.items()
        for statistic, facets in statistics.items()
        for facet in facets
    ]

    return {
        "metadata": {
            "city": geography_code,
            "city_label": geography_label,
            "scenarios": (
                scenarios
                if scenarios is not None
                else sorted({q[0] for q in quadruples})
            ),
            "outcomes": sorted({q[1] for q in quadruples}),
            "statistics": sorted({q[2] for q in quadruples}),
            "facets": sorted({q[3] for q in quadruples}),
            "generation_time": "2025-01-01T00:00:00.000Z",
            "file_count": len(quadruples),
        },
        "data": data,
    }

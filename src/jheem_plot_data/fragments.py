"""
Fragments and the conventions used to describe them

A fragment is a single JSON file produced by the model-execution process.
It holds the simulated (`sim`) and observed (`obs`) data
for one scenario, outcome, statistic and facet for a single geography.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any

from attrs import define

from jheem_plot_data.exceptions import MalformedFragmentError, UnrecognisedValueError
from jheem_plot_data.typing import PlotFragmentDict, RecordDict

MEAN_AND_INTERVAL = "mean.and.interval"
MEDIAN_AND_INTERVAL = "median.and.interval"
INDIVIDUAL_SIMULATION = "individual.simulation"

STATISTICS: tuple[str, ...] = (
    MEAN_AND_INTERVAL,
    MEDIAN_AND_INTERVAL,
    INDIVIDUAL_SIMULATION,
)
"""
Statistics (i.e. summarisation modes) that the model-execution process produces
"""

NO_FACET = "none"
"""
Facet key used for unstratified (total) data
"""

BASELINE_SIMSET = "Baseline"
"""
Simset label of the baseline (no intervention) arm
"""

FACET_DIMENSION_KEYS: tuple[str, ...] = (
    "facet.by1",
    "facet.by2",
    "facet.by3",
    "facet.by4",
)
"""
Keys of records which hold facet values, in the order in which they are combined
"""

LEGACY_COMPLETE_MARKER = "_complete"
"""
Marker in the name of files written in the old, single-file format
"""

FRAGMENT_FILENAME_RE = re.compile(
    r"^(.+?)_(mean\.and\.interval|median\.and\.interval|individual\.simulation)_(unfaceted|facet_\w+)\.json$"  # noqa: E501
)
"""
Regular expression which fragment file names must match

The groups are outcome, statistic and facet descriptor.
"""


class RecordKind(Enum):
    """
    The kind of records held in a fragment's simulated data
    """

    SUMMARY_STATISTIC = "summary_statistic"
    """
    One record per year and simset, with optional lower and upper bounds
    """

    INDIVIDUAL_DRAW = "individual_draw"
    """
    One record per year, simset and individual simulation (draw)
    """


@define(frozen=True)
class FragmentFilename:
    """
    Information that can be decoded from a fragment's file name
    """

    outcome: str
    """
    Outcome e.g. "incidence"
    """

    statistic: str
    """
    Statistic e.g. "mean.and.interval"
    """

    facet: str
    """
    Facet key e.g. "none" or "age"
    """


def facet_descriptor_to_facet(facet_descriptor: str) -> str:
    """
    Convert the facet descriptor used in file names to a facet key

    Parameters
    ----------
    facet_descriptor
        Facet descriptor e.g. "unfaceted" or "facet_age"

    Returns
    -------
    :
        Facet key e.g. "none" or "age"
    """
    if facet_descriptor == "unfaceted":
        return NO_FACET

    return facet_descriptor.removeprefix("facet_")


def parse_fragment_filename(filename: str) -> FragmentFilename | None:
    """
    Parse a fragment's file name

    Parameters
    ----------
    filename
        File name to parse

        Only the base name is used, so paths can also be passed.

    Returns
    -------
    :
        Parsed information or `None` if `filename`
        does not follow the fragment naming convention
    """
    match = FRAGMENT_FILENAME_RE.match(Path(filename).name)
    if match is None:
        return None

    outcome, statistic, facet_descriptor = match.groups()

    return FragmentFilename(
        outcome=outcome,
        statistic=statistic,
        facet=facet_descriptor_to_facet(facet_descriptor),
    )


def assert_is_known_statistic(statistic: str) -> None:
    """
    Assert that a statistic is one of the known statistics

    Parameters
    ----------
    statistic
        Statistic to check

    Raises
    ------
    UnrecognisedValueError
        `statistic` is not one of [STATISTICS][(m).]
    """
    if statistic not in STATISTICS:
        raise UnrecognisedValueError(
            unrecognised_value=statistic,
            name="statistic",
            known_values=STATISTICS,
        )


def get_fragment_metadata(
    fragment: PlotFragmentDict, fragment_description: str | None = None
) -> dict[str, Any]:
    """
    Get a fragment's metadata

    Parameters
    ----------
    fragment
        Fragment

    fragment_description
        Description of the fragment to use in error messages

    Returns
    -------
    :
        The fragment's metadata

    Raises
    ------
    MalformedFragmentError
        `fragment` has no metadata block
    """
    if not isinstance(fragment, dict):
        raise MalformedFragmentError(
            f"expected a mapping, received {type(fragment).__name__}",
            fragment_description=fragment_description,
        )

    metadata = fragment.get("metadata")
    if not isinstance(metadata, dict):
        raise MalformedFragmentError(
            "no metadata block", fragment_description=fragment_description
        )

    return metadata


def get_sim_records(fragment: PlotFragmentDict) -> list[RecordDict]:
    """
    Get a fragment's simulated records

    `null` (no data for the combination) is returned as an empty list.
    """
    sim = fragment.get("sim")
    if not sim:
        return []

    return list(sim)


def get_obs_records(fragment: PlotFragmentDict) -> list[RecordDict]:
    """
    Get a fragment's observed records

    Fragments without observations hold an empty object (`{}`) rather than a list,
    this is returned as an empty list.
    """
    obs = fragment.get("obs")
    if not obs or not isinstance(obs, list):
        return []

    return obs


def get_record_kind(fragment: PlotFragmentDict) -> RecordKind:
    """
    Get the kind of records held by a fragment

    This is decided once per fragment.
    Individual draws are identified either by the fragment's statistic
    or by the first simulated record carrying a draw identifier (`sim`).

    Parameters
    ----------
    fragment
        Fragment

    Returns
    -------
    :
        Kind of records in `fragment`
    """
    metadata = get_fragment_metadata(fragment)
    if metadata.get("statistic") == INDIVIDUAL_SIMULATION:
        return RecordKind.INDIVIDUAL_DRAW

    sim = get_sim_records(fragment)
    if sim and "sim" in sim[0]:
        return RecordKind.INDIVIDUAL_DRAW

    return RecordKind.SUMMARY_STATISTIC


def has_facet_values(record: RecordDict) -> bool:
    """
    Check whether a record carries at least one facet value
    """
    return any(record.get(k) for k in FACET_DIMENSION_KEYS)

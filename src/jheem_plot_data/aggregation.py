"""
Aggregation of fragments into a single document per geography

The model-execution process writes one file per
scenario, outcome, statistic and facet combination.
Here we merge all the files for one geography into a single aggregate,
which is what is served to (and cached by) the front-end.
The aggregate is structured as

```python
{
    "metadata": {
        "city": "C.12580",
        "city_label": "Baltimore-Columbia-Towson, MD",
        "scenarios": ["cessation", ...],
        "outcomes": ["incidence", ...],
        "statistics": ["mean.and.interval", ...],
        "facets": ["age", "none", ...],
        "generation_time": "2025-01-01T00:00:00.000Z",
        "file_count": 120,
    },
    "data": {scenario: {outcome: {statistic: {facet: fragment}}}},
}
```

The same structure is used for states
(in which case the `city` field holds the state code).
"""

from __future__ import annotations

import datetime as dt
import json
import multiprocessing
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from attrs import define, field, validators
from loguru import logger
from pandas_openscm.parallelisation import ParallelOpConfig, apply_op_parallel_progress

from jheem_plot_data.exceptions import DuplicateFragmentKeyError
from jheem_plot_data.fragments import (
    LEGACY_COMPLETE_MARKER,
    parse_fragment_filename,
)
from jheem_plot_data.io import get_file_size_mb, load_json, write_json
from jheem_plot_data.typing import AggregateDict

ON_DUPLICATE_OPTIONS: tuple[str, ...] = ("overwrite", "warn", "raise")
"""
Supported options for handling fragments which share the same key
"""


@define(frozen=True)
class SkippedItem:
    """
    An item (fragment file or geography) which was excluded from the output
    """

    item: str
    """
    Identifier of the item e.g. its path or geography code
    """

    reason: str
    """
    Why the item was skipped
    """


@define
class AggregationResult:
    """
    Result of aggregating the fragments for one geography
    """

    aggregate: AggregateDict
    """
    Aggregate, ready to be serialised to JSON
    """

    file_count: int
    """
    Number of fragments that were merged into `aggregate`

    Fragments which were overwritten by a later fragment with the same key
    are included in this count.
    """

    skipped: list[SkippedItem] = field(factory=list)
    """
    Files which were skipped
    """


def get_generation_time() -> str:
    """
    Get the current time in the format we use for generation timestamps

    Returns
    -------
    :
        Current UTC time in ISO-8601 format with millisecond precision,
        e.g. `"2025-01-01T12:00:00.000Z"`
    """
    now = dt.datetime.now(dt.timezone.utc)

    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def find_fragment_files(input_dir: Path) -> list[Path]:
    """
    Find all JSON files in a directory tree

    Parameters
    ----------
    input_dir
        Directory to search (recursively)

    Returns
    -------
    :
        Found files

        These are sorted so that the order in which files are processed
        (and hence which file wins if two have the same key)
        does not depend on the platform.
    """
    return sorted(p for p in Path(input_dir).rglob("*.json") if p.is_file())


def get_location_label(plot_title: str | None, geography_code: str) -> str:
    """
    Get the label of a geography from a fragment's plot title

    Parameters
    ----------
    plot_title
        Plot title e.g. "Baltimore-Columbia-Towson, MD (Incidence)"

    geography_code
        Code of the geography, used if no label can be derived

    Returns
    -------
    :
        Label e.g. "Baltimore-Columbia-Towson, MD"
    """
    if not plot_title:
        return geography_code

    label = plot_title.split(" (")[0]

    return label or geography_code


def get_data_quadruples(aggregate: AggregateDict) -> set[tuple[str, str, str, str]]:
    """
    Get all the (scenario, outcome, statistic, facet) keys in an aggregate's data

    Parameters
    ----------
    aggregate
        Aggregate to check

    Returns
    -------
    :
        All keys which are present in `aggregate["data"]`
    """
    return {
        (scenario, outcome, statistic, facet)
        for scenario, outcomes in aggregate["data"].items()
        for outcome, statistics in outcomes.items()
        for statistic, facets in statistics.items()
        for facet in facets
    }


def assert_metadata_matches_data(aggregate: AggregateDict) -> None:
    """
    Assert that an aggregate's metadata is consistent with its data

    Every key used in the data must appear in the metadata
    and every value in the metadata must be used in the data.

    Parameters
    ----------
    aggregate
        Aggregate to check

    Raises
    ------
    AssertionError
        The metadata and data are not consistent
    """
    quadruples = get_data_quadruples(aggregate)
    metadata = aggregate["metadata"]
    for i, key in enumerate(["scenarios", "outcomes", "statistics", "facets"]):
        in_data = {q[i] for q in quadruples}
        in_metadata = set(metadata[key])
        if in_data != in_metadata:
            msg = (
                f"Metadata {key} does not match data. "
                f"Only in data: {sorted(in_data - in_metadata)}. "
                f"Only in metadata: {sorted(in_metadata - in_data)}"
            )
            raise AssertionError(msg)


def aggregate_location_fragments(  # noqa: PLR0912
    input_dir: Path,
    on_duplicate: str = "overwrite",
) -> AggregationResult:
    """
    Aggregate all the fragments for a single geography

    Parameters
    ----------
    input_dir
        Directory which contains the fragments (searched recursively)

    on_duplicate
        What to do if two fragments have the same
        (scenario, outcome, statistic, facet) key.

        - "overwrite": the later file (in sorted path order) silently wins
        - "warn": as "overwrite", but a warning is logged
        - "raise": raise a [DuplicateFragmentKeyError][jheem_plot_data.exceptions.]

    Returns
    -------
    :
        Aggregation result

    Raises
    ------
    FileNotFoundError
        `input_dir` does not exist or is not a directory

    DuplicateFragmentKeyError
        Two fragments have the same key and `on_duplicate` is "raise"
    """
    if on_duplicate not in ON_DUPLICATE_OPTIONS:
        raise NotImplementedError(on_duplicate)

    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        msg = f"Input directory not found: {input_dir}"
        raise FileNotFoundError(msg)

    scenarios: set[str] = set()
    outcomes: set[str] = set()
    statistics: set[str] = set()
    facets: set[str] = set()

    geography_code = ""
    geography_label = ""
    file_count = 0

    data: dict[str, dict[str, dict[str, dict[str, Any]]]] = {}
    sources: dict[tuple[str, str, str, str], Path] = {}
    skipped: list[SkippedItem] = []

    def skip(path: Path, reason: str) -> None:
        logger.warning(f"Skipping {path}: {reason}")
        skipped.append(SkippedItem(item=str(path), reason=reason))

    for path in find_fragment_files(input_dir):
        if LEGACY_COMPLETE_MARKER in path.name:
            skip(path, "legacy complete file")
            continue

        from_filename = parse_fragment_filename(path.name)
        if from_filename is None:
            skip(path, "file name does not follow the fragment naming convention")
            continue

        try:
            fragment = load_json(path)
        except (json.JSONDecodeError, UnicodeDecodeError):
            skip(path, "invalid JSON")
            continue

        metadata = fragment.get("metadata") if isinstance(fragment, dict) else None
        if (
            not isinstance(metadata, dict)
            or not metadata.get("scenario")
            or not metadata.get("outcome")
        ):
            skip(path, "missing metadata")
            continue

        # The metadata is authoritative, the file name only fills gaps
        scenario = metadata["scenario"]
        outcome = metadata["outcome"]
        statistic = metadata.get("statistic") or from_filename.statistic
        facet = metadata.get("facet") or from_filename.facet

        if not geography_code:
            geography_code = metadata.get("geography_code") or metadata.get("city", "")
            geography_label = get_location_label(
                metadata.get("plot_title"), geography_code
            )

        key = (scenario, outcome, statistic, facet)
        if key in sources:
            if on_duplicate == "raise":
                raise DuplicateFragmentKeyError(
                    key=key, existing_source=str(sources[key]), new_source=str(path)
                )

            if on_duplicate == "warn":
                logger.warning(
                    f"Fragment {path} overwrites {sources[key]} for key {key}"
                )

        scenarios.add(scenario)
        outcomes.add(outcome)
        statistics.add(statistic)
        facets.add(facet)

        data.setdefault(scenario, {}).setdefault(outcome, {}).setdefault(
            statistic, {}
        )[facet] = fragment
        sources[key] = path
        file_count += 1

        logger.debug(f"Processed: {scenario}/{outcome}/{statistic}/{facet}")

    aggregate = {
        "metadata": {
            "city": geography_code,
            "city_label": geography_label,
            "scenarios": sorted(scenarios),
            "outcomes": sorted(outcomes),
            "statistics": sorted(statistics),
            "facets": sorted(facets),
            "generation_time": get_generation_time(),
            "file_count": file_count,
        },
        "data": data,
    }

    return AggregationResult(
        aggregate=aggregate, file_count=file_count, skipped=skipped
    )


def aggregate_and_write(
    paths: tuple[Path, Path],
    on_duplicate: str = "overwrite",
) -> tuple[Path, AggregationResult]:
    """
    Aggregate the fragments for one geography and write the result to disk

    Parameters
    ----------
    paths
        Input directory and output file

        These are passed as a tuple to support
        [apply_op_parallel_progress][pandas_openscm.parallelisation.].

    on_duplicate
        Passed to [aggregate_location_fragments][(m).]

    Returns
    -------
    :
        Output file and aggregation result

        The output file is returned too because results
        of parallel runs are not guaranteed to come back in input order.
    """
    input_dir, output_file = paths
    res = aggregate_location_fragments(input_dir, on_duplicate=on_duplicate)
    write_json(res.aggregate, output_file)

    metadata = res.aggregate["metadata"]
    logger.info(
        f"Aggregated {metadata['city']} ({metadata['city_label']}): "
        f"{res.file_count} files, {len(res.skipped)} skipped. "
        f"Output: {output_file} ({get_file_size_mb(output_file):.2f} MB)"
    )

    return output_file, res


@define
class LocationAggregator:
    """
    Aggregator of fragments for many geographies

    Each geography is independent of the others,
    so geographies can be processed in parallel.
    Within a geography, fragments are always merged in serial
    so that the result is deterministic.
    """

    on_duplicate: str = field(
        default="overwrite", validator=validators.in_(ON_DUPLICATE_OPTIONS)
    )
    """
    What to do if two fragments for one geography have the same key

    See [aggregate_location_fragments][(m).] for details.
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

    def __call__(
        self, input_output_map: Mapping[Path, Path] | Iterable[tuple[Path, Path]]
    ) -> dict[Path, AggregationResult]:
        """
        Aggregate

        Parameters
        ----------
        input_output_map
            Map from input directory (one per geography) to output file

        Returns
        -------
        :
            Map from output file to the result of aggregation
        """
        if isinstance(input_output_map, Mapping):
            paths = [(Path(k), Path(v)) for k, v in input_output_map.items()]
        else:
            paths = [(Path(k), Path(v)) for k, v in input_output_map]

        # Check up front so we fail before doing any work
        for input_dir, _ in paths:
            if not input_dir.is_dir():
                msg = f"Input directory not found: {input_dir}"
                raise FileNotFoundError(msg)

        res_l = apply_op_parallel_progress(
            func_to_call=aggregate_and_write,
            iterable_input=paths,
            parallel_op_config=ParallelOpConfig.from_user_facing(
                progress=self.progress,
                max_workers=self.n_processes,
                progress_results_kwargs=dict(desc="Geographies to aggregate"),
            ),
            on_duplicate=self.on_duplicate,
        )

        return dict(res_l)

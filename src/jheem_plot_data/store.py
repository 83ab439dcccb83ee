"""
Loading, caching and selecting from aggregates

Aggregates are large, so they should only be loaded once.
Rather than hiding a cache in module-level state,
the cache is an explicit object, owned by whoever needs it.
"""

from __future__ import annotations

from collections import OrderedDict
from pathlib import Path
from typing import Any

from attrs import define, field, validators
from loguru import logger

from jheem_plot_data.io import load_json
from jheem_plot_data.typing import AggregateDict, PlotFragmentDict


@define
class AggregateCache:
    """
    Cache of loaded aggregates

    Once the cache is full, the least recently used aggregate is evicted.
    """

    max_size: int | None = field(
        default=16, validator=validators.optional(validators.ge(1))
    )
    """
    Maximum number of aggregates to hold

    If `None`, the cache is unbounded.
    """

    _entries: OrderedDict[str, AggregateDict] = field(
        init=False, factory=OrderedDict, repr=False
    )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> AggregateDict | None:
        """
        Get an aggregate

        Returns `None` if `key` is not in the cache.
        """
        if key not in self._entries:
            return None

        self._entries.move_to_end(key)

        return self._entries[key]

    def put(self, key: str, value: AggregateDict) -> None:
        """
        Put an aggregate in the cache
        """
        self._entries[key] = value
        self._entries.move_to_end(key)

        if self.max_size is not None:
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted} from the aggregate cache")

    def invalidate(self, key: str | None = None) -> None:
        """
        Remove an aggregate from the cache

        Parameters
        ----------
        key
            Key to remove. If `None`, everything is removed.
        """
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


def assert_is_aggregate(value: Any, description: str) -> None:
    """
    Assert that a value has the structure of an aggregate

    Parameters
    ----------
    value
        Value to check

    description
        Description of the value, used in the error message

    Raises
    ------
    ValueError
        `value` does not have `metadata` and `data` blocks
    """
    if (
        not isinstance(value, dict)
        or not isinstance(value.get("metadata"), dict)
        or not isinstance(value.get("data"), dict)
    ):
        msg = f"Invalid aggregate structure: {description}"
        raise ValueError(msg)


@define
class AggregateStore:
    """
    Store of aggregates on disk, with a cache in front of it

    Aggregates are expected at `{data_dir}/{geography_code}.json`.
    """

    data_dir: Path = field(converter=Path)
    """
    Directory which holds the aggregates
    """

    cache: AggregateCache = field(factory=AggregateCache)
    """
    Cache of loaded aggregates
    """

    def get_path(self, code: str) -> Path:
        """
        Get the path to the aggregate for a geography
        """
        return self.data_dir / f"{code}.json"

    def load(self, code: str) -> AggregateDict:
        """
        Load the aggregate for a geography

        Parameters
        ----------
        code
            Geography code

        Returns
        -------
        :
            Aggregate (from the cache, if it has already been loaded)

        Raises
        ------
        FileNotFoundError
            There is no aggregate for `code`

        ValueError
            The file does not contain a valid aggregate
        """
        cached = self.cache.get(code)
        if cached is not None:
            return cached

        path = self.get_path(code)
        if not path.exists():
            msg = f"Data not available for {code} (expected {path})"
            raise FileNotFoundError(msg)

        aggregate = load_json(path)
        assert_is_aggregate(aggregate, description=str(path))

        self.cache.put(code, aggregate)

        return aggregate

    def refresh(self, code: str) -> AggregateDict:
        """
        Re-load the aggregate for a geography, bypassing the cache
        """
        self.cache.invalidate(code)

        return self.load(code)


def get_plot_data(
    aggregate: AggregateDict,
    scenario: str,
    outcome: str,
    statistic: str,
    facet: str,
) -> PlotFragmentDict | None:
    """
    Get the fragment for a given selection

    Parameters
    ----------
    aggregate
        Aggregate from which to get the fragment

    scenario
        Scenario

    outcome
        Outcome

    statistic
        Statistic

    facet
        Facet

    Returns
    -------
    :
        Fragment or `None` if there is no fragment for the selection.
        Callers should handle this before passing anything to
        [transform_plot_data][jheem_plot_data.transform.].
    """
    res: PlotFragmentDict | None = (
        aggregate["data"]
        .get(scenario, {})
        .get(outcome, {})
        .get(statistic, {})
        .get(facet)
    )

    return res


def get_available_options(aggregate: AggregateDict) -> dict[str, list[str]]:
    """
    Get the scenarios, outcomes, statistics and facets available in an aggregate
    """
    metadata = aggregate["metadata"]

    return {
        key: list(metadata.get(key, []))
        for key in ["scenarios", "outcomes", "statistics", "facets"]
    }


OPTION_DISPLAY_NAMES: dict[str, str] = {
    "mean.and.interval": "Mean with 95% CI",
    "median.and.interval": "Median with 95% CI",
    "individual.simulation": "Individual Simulations",
    "diagnosed.prevalence": "Diagnosed Prevalence",
    "none": "Total (Unfaceted)",
}
"""
Display names of options which can't be derived from the option itself
"""


def format_option_name(option: str) -> str:
    """
    Format an option (e.g. an outcome or statistic) for display

    Parameters
    ----------
    option
        Option to format

    Returns
    -------
    :
        Display name.
        Unless the option is in [OPTION_DISPLAY_NAMES][(m).],
        dots are replaced with spaces and
        each underscore-separated word is capitalised,
        e.g. "new.diagnoses" becomes "New diagnoses"
        and "testing_rate" becomes "Testing Rate".
    """
    if option in OPTION_DISPLAY_NAMES:
        return OPTION_DISPLAY_NAMES[option]

    return " ".join(
        word[:1].upper() + word[1:] for word in option.replace(".", " ").split("_")
    )


def get_outcome_display_name(aggregate: AggregateDict, outcome: str) -> str:
    """
    Get the display name of an outcome

    Parameters
    ----------
    aggregate
        Aggregate in which to look for the display name

    outcome
        Outcome

    Returns
    -------
    :
        The first display name found in the outcome's fragments' metadata
        or, if there is none, a name derived from `outcome`
    """
    for outcome_data in (d.get(outcome) for d in aggregate["data"].values()):
        if not outcome_data:
            continue

        for facets in outcome_data.values():
            for fragment in facets.values():
                outcome_metadata = (fragment.get("metadata") or {}).get(
                    "outcome_metadata"
                ) or {}
                display_name = outcome_metadata.get("display_name")
                if display_name:
                    return str(display_name)

    return format_option_name(outcome)

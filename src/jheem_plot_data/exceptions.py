"""
Exceptions that are used throughout
"""

from __future__ import annotations

import difflib
from collections.abc import Collection


class UnrecognisedValueError(ValueError):
    """
    Raised when a value is not one of the values we know about
    """

    def __init__(
        self,
        unrecognised_value: str,
        name: str,
        known_values: Collection[str],
        n_suggestions: int = 3,
    ) -> None:
        """
        Initialise the error

        Parameters
        ----------
        unrecognised_value
            The value that was not recognised

        name
            The name of the variable that holds `unrecognised_value`

            This is only used to provide a helpful error message.

        known_values
            The values that we know about

        n_suggestions
            Maximum number of close matches to suggest
        """
        error_msg = f"{unrecognised_value!r} is not a recognised value for {name}. "

        close = difflib.get_close_matches(
            unrecognised_value, list(known_values), n=n_suggestions
        )
        if close:
            suggestions = " or ".join(repr(v) for v in close)
            error_msg += f"Did you mean {suggestions}? "

        error_msg += f"The full list of known values is: {list(known_values)}"

        super().__init__(error_msg)


class MalformedFragmentError(ValueError):
    """
    Raised when a fragment does not have the structure we require

    This indicates a problem upstream of us (in the data generation),
    as opposed to there simply being no data for a given selection.
    """

    def __init__(self, reason: str, fragment_description: str | None = None) -> None:
        """
        Initialise the error

        Parameters
        ----------
        reason
            Why the fragment is malformed

        fragment_description
            Description of the fragment (e.g. its path), if known
        """
        if fragment_description is None:
            error_msg = f"Malformed fragment: {reason}"
        else:
            error_msg = f"Malformed fragment ({fragment_description}): {reason}"

        super().__init__(error_msg)


class DuplicateFragmentKeyError(ValueError):
    """
    Raised when two fragments map to the same location in an aggregate
    """

    def __init__(
        self,
        key: tuple[str, str, str, str],
        existing_source: str,
        new_source: str,
    ) -> None:
        """
        Initialise the error

        Parameters
        ----------
        key
            (scenario, outcome, statistic, facet) key which is duplicated

        existing_source
            Source of the fragment that is already stored under `key`

        new_source
            Source of the fragment that would overwrite it
        """
        error_msg = (
            f"Duplicate fragment key {key}. "
            f"Already filled by {existing_source}, "
            f"would be overwritten by {new_source}"
        )
        super().__init__(error_msg)

"""
Canonical geography registry

The registry is the source of truth for where geographies sit on the map
and what they are called.
The aggregates do not carry coordinates,
so summaries can only be created for geographies in the registry.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any, cast

import pandas as pd
from attrs import define, field

from jheem_plot_data.databases.geographies import GEOGRAPHY_COLUMNS
from jheem_plot_data.exceptions import UnrecognisedValueError


def derive_short_name(label: str) -> str:
    """
    Derive a short display name from a geography's full label

    Parameters
    ----------
    label
        Full label e.g. "Baltimore-Columbia-Towson, MD"

    Returns
    -------
    :
        Everything before the first dash or comma, e.g. "Baltimore"
    """
    return re.split(r"[-,]", label, maxsplit=1)[0].strip()


def assert_has_geography_columns(value: pd.DataFrame) -> None:
    """
    Assert that a table has the columns required of a geography database

    Parameters
    ----------
    value
        Table to check

    Raises
    ------
    AssertionError
        `value` is missing required columns or has duplicate codes
    """
    missing = [c for c in GEOGRAPHY_COLUMNS if c not in value.columns]
    if missing:
        msg = f"Missing required columns: {missing}. {value.columns=}"
        raise AssertionError(msg)

    duplicated = value.loc[value["code"].duplicated(), "code"].tolist()
    if duplicated:
        msg = f"Duplicate geography codes: {duplicated}"
        raise AssertionError(msg)


@define
class GeographyRegistry:
    """
    Registry of geographies, their names and their coordinates
    """

    database: pd.DataFrame = field()
    """
    Table of geographies

    Must have the columns given by
    [GEOGRAPHY_COLUMNS][jheem_plot_data.databases.geographies.].
    """

    @database.validator
    def validate_database(self, attribute: Any, value: pd.DataFrame) -> None:
        """
        Validate the database value
        """
        assert_has_geography_columns(value)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> GeographyRegistry:
        """
        Initialise from records

        Parameters
        ----------
        records
            Records of the form
            `{"code": "AL", "name": "Alabama", "coordinates": [-86.9, 32.3]}`.
            A `"short_name"` (or `"shortName"`) key is optional.

        Returns
        -------
        :
            Initialised registry
        """
        rows = []
        for record in records:
            longitude, latitude = record["coordinates"]
            rows.append(
                (
                    record["code"],
                    record["name"],
                    record.get("short_name", record.get("shortName", "")),
                    float(longitude),
                    float(latitude),
                )
            )

        return cls(pd.DataFrame(rows, columns=list(GEOGRAPHY_COLUMNS)))

    @property
    def codes(self) -> list[str]:
        """
        Codes of all geographies in the registry
        """
        return cast(list[str], self.database["code"].tolist())

    def _get_row(self, code: str) -> pd.Series[Any] | None:
        rows = self.database.loc[self.database["code"] == code]
        if rows.empty:
            return None

        return rows.iloc[0]

    def lookup(self, code: str) -> dict[str, Any]:
        """
        Look up a geography

        Parameters
        ----------
        code
            Code of the geography

        Returns
        -------
        :
            Information about the geography

        Raises
        ------
        UnrecognisedValueError
            `code` is not in the registry
        """
        row = self._get_row(code)
        if row is None:
            raise UnrecognisedValueError(
                unrecognised_value=code,
                name="geography code",
                known_values=sorted(self.codes),
            )

        return {
            "code": row["code"],
            "name": row["name"],
            "short_name": row["short_name"],
            "coordinates": (float(row["longitude"]), float(row["latitude"])),
        }

    def get_coordinates(self, code: str) -> tuple[float, float] | None:
        """
        Get the [longitude, latitude] of a geography

        Returns `None` if `code` is not in the registry.
        """
        row = self._get_row(code)
        if row is None:
            return None

        return (float(row["longitude"]), float(row["latitude"]))

    def get_name(self, code: str) -> str | None:
        """
        Get the canonical name of a geography

        Returns `None` if `code` is not in the registry.
        """
        row = self._get_row(code)
        if row is None:
            return None

        return cast(str, row["name"])

    def get_short_name(self, code: str, label: str) -> str:
        """
        Get the short display name of a geography

        Parameters
        ----------
        code
            Code of the geography

        label
            Full label of the geography

            Used to derive the short name
            if the registry does not define one.

        Returns
        -------
        :
            Short display name
        """
        row = self._get_row(code)
        if row is not None and row["short_name"]:
            return cast(str, row["short_name"])

        return derive_short_name(label)


def get_city_registry() -> GeographyRegistry:
    """
    Get the registry of cities (metropolitan statistical areas)
    """
    from jheem_plot_data.databases import CITIES

    return GeographyRegistry(CITIES)


def get_state_registry() -> GeographyRegistry:
    """
    Get the registry of states
    """
    from jheem_plot_data.databases import STATES

    return GeographyRegistry(STATES)

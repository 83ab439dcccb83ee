"""
Geographies database
"""

from __future__ import annotations

import pandas as pd

GEOGRAPHY_COLUMNS: tuple[str, ...] = (
    "code",
    "name",
    "short_name",
    "longitude",
    "latitude",
)
"""
Columns of the geography databases
"""

CITIES = pd.DataFrame(
    [
        ("C.12060", "Atlanta-Sandy Springs-Roswell, GA", "Atlanta", -84.3880, 33.7490),
        ("C.12420", "Austin-Round Rock, TX", "", -97.7431, 30.2672),
        (
            "C.12580",
            "Baltimore-Columbia-Towson, MD",
            "Baltimore",
            -76.6122,
            39.2904,
        ),
        ("C.12940", "Baton Rouge, LA", "", -91.1871, 30.4515),
        ("C.14460", "Boston-Cambridge-Newton, MA-NH", "", -71.0589, 42.3601),
        ("C.16740", "Charlotte-Concord-Gastonia, NC-SC", "", -80.8431, 35.2271),
        (
            "C.16980",
            "Chicago-Naperville-Elgin, IL-IN-WI",
            "Chicago",
            -87.6298,
            41.8781,
        ),
        ("C.17460", "Cleveland-Elyria, OH", "", -81.6944, 41.4993),
        ("C.18140", "Columbus, OH", "", -82.9988, 39.9612),
        ("C.19100", "Dallas-Fort Worth-Arlington, TX", "Dallas", -96.7970, 32.7767),
        ("C.19820", "Detroit-Warren-Dearborn, MI", "Detroit", -83.0458, 42.3314),
        (
            "C.26420",
            "Houston-The Woodlands-Sugar Land, TX",
            "Houston",
            -95.3698,
            29.7604,
        ),
        ("C.26900", "Indianapolis-Carmel-Anderson, IN", "", -86.1581, 39.7684),
        ("C.27260", "Jacksonville, FL", "", -81.6557, 30.3322),
        ("C.29820", "Las Vegas-Henderson-Paradise, NV", "", -115.1398, 36.1699),
        (
            "C.31080",
            "Los Angeles-Long Beach-Anaheim, CA",
            "Los Angeles",
            -118.2437,
            34.0522,
        ),
        ("C.32820", "Memphis, TN-MS-AR", "", -90.0490, 35.1495),
        (
            "C.33100",
            "Miami-Fort Lauderdale-West Palm Beach, FL",
            "Miami",
            -80.1918,
            25.7617,
        ),
        ("C.35380", "New Orleans-Metairie, LA", "", -90.0715, 29.9511),
        (
            "C.35620",
            "New York-Newark-Jersey City, NY-NJ-PA",
            "New York",
            -74.0059,
            40.7128,
        ),
        ("C.36740", "Orlando-Kissimmee-Sanford, FL", "", -81.3792, 28.5383),
        (
            "C.37980",
            "Philadelphia-Camden-Wilmington, PA-NJ-DE-MD",
            "Philadelphia",
            -75.1652,
            39.9526,
        ),
        ("C.38060", "Phoenix-Mesa-Scottsdale, AZ", "Phoenix", -112.0740, 33.4484),
        ("C.40140", "Riverside-San Bernardino-Ontario, CA", "", -117.3961, 33.9533),
        (
            "C.40900",
            "Sacramento-Roseville-Arden-Arcade, CA",
            "Sacramento",
            -121.4944,
            38.5816,
        ),
        (
            "C.41700",
            "San Antonio-New Braunfels, TX",
            "San Antonio",
            -98.4936,
            29.4241,
        ),
        ("C.41740", "San Diego-Carlsbad, CA", "San Diego", -117.1611, 32.7157),
        (
            "C.41860",
            "San Francisco-Oakland-Hayward, CA",
            "San Francisco",
            -122.4194,
            37.7749,
        ),
        ("C.42660", "Seattle-Tacoma-Bellevue, WA", "Seattle", -122.3321, 47.6062),
        ("C.45300", "Tampa-St. Petersburg-Clearwater, FL", "Tampa", -82.4572, 27.9506),
        (
            "C.47900",
            "Washington-Arlington-Alexandria, DC-VA-MD-WV",
            "Washington DC",
            -77.0369,
            38.9072,
        ),
    ],
    columns=list(GEOGRAPHY_COLUMNS),
)
"""
Database of the metropolitan statistical areas for which we have simulation data

Coordinates are [longitude, latitude] of the metropolitan area's centre.
An empty short name means that the short name
is derived from the full name when needed.

You will likely not need to access this variable directly,
and instead will use [GeographyRegistry][jheem_plot_data.geographies.].
"""

STATES = pd.DataFrame(
    [
        ("AL", "Alabama", "AL", -86.9023, 32.3182),
        ("CA", "California", "CA", -119.4179, 36.7783),
        ("FL", "Florida", "FL", -81.5158, 27.6648),
        ("GA", "Georgia", "GA", -82.9001, 32.1656),
        ("IL", "Illinois", "IL", -89.3985, 40.6331),
        ("LA", "Louisiana", "LA", -91.9623, 30.9843),
        ("MO", "Missouri", "MO", -91.8318, 37.9643),
        ("MS", "Mississippi", "MS", -89.3985, 32.3547),
        ("NY", "New York", "NY", -75.4999, 43.2994),
        ("TX", "Texas", "TX", -99.9018, 31.9686),
        ("WI", "Wisconsin", "WI", -89.6165, 43.7844),
    ],
    columns=list(GEOGRAPHY_COLUMNS),
)
"""
Database of the states for which we have state-level simulation data

Coordinates are the approximate [longitude, latitude] of the state's centre.
For states, the short name is the state code.
"""

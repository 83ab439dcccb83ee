"""
Type hints that are used throughout
"""

from __future__ import annotations

from typing import Any

from typing_extensions import TypeAlias

RecordDict: TypeAlias = dict[str, Any]
"""
Type alias for a single simulated or observed record

The keys follow the names used in the JSON files,
e.g. `"value.lower"` and `"facet.by1"`,
so we keep records as plain dictionaries rather than converting them.
"""

PlotFragmentDict: TypeAlias = dict[str, Any]
"""
Type alias for a fragment, as loaded from JSON

A fragment holds simulated and observed data
for one scenario, outcome, statistic and facet for a single geography.

```python
{
    "sim": [{"year": 2024, "value": 1.0, "simset": "Baseline", ...}, ...],
    "obs": [{"year": "2020", "value": 1.1, "source": "cdc", ...}, ...],
    "metadata": {"scenario": "cessation", "outcome": "incidence", ...},
}
```
"""

AggregateDict: TypeAlias = dict[str, Any]
"""
Type alias for an aggregate, i.e. all fragments for one geography

```python
{
    "metadata": {"city": "C.12580", "scenarios": [...], ...},
    "data": {scenario: {outcome: {statistic: {facet: fragment}}}},
}
```
"""

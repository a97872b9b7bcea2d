"""
City list loader backing the city picker endpoint.
"""

import csv
from pathlib import Path
from typing import List, Union


def load_cities(path: Union[str, Path]) -> List[str]:
    """Read city names from a one-column CSV, skipping the header and blank rows."""
    with open(path, encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    return [row[0].strip() for row in rows[1:] if row and row[0].strip()]

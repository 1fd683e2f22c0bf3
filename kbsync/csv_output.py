"""
CSV output utilities for generated reports.
"""

import csv
import io
from typing import Any, Dict, List


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    """
    Convert a list of dictionaries to CSV text.

    Column order follows the keys of the first row; values are quoted only when
    they contain a delimiter, a quote or a line break. Returns an empty string
    when there are no rows.
    """
    if not rows:
        return ''
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=list(rows[0].keys()), extrasaction='ignore', lineterminator='\n')
    writer.writeheader()
    for row in rows:
        writer.writerow({key: '' if value is None else value for key, value in row.items()})
    return output.getvalue().rstrip('\n')

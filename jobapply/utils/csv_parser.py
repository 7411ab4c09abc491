import csv
import io
from typing import List, Dict, Tuple

REQUIRED_HEADERS = ["Job Title", "Company", "Job Link", "Application Date", "Status"]


def parse_applications_csv(content: str) -> Tuple[List[Dict[str, str]], List[str]]:
    """
    Parse an applications CSV export.
    Returns (rows, errors); rows are keyed by the lower-cased header.
    """
    errors = []
    rows = []

    reader = csv.DictReader(io.StringIO(content.strip()))
    headers = [h.strip().lower() for h in (reader.fieldnames or [])]

    missing = [h for h in REQUIRED_HEADERS if h.lower() not in headers]
    if missing:
        errors.append(f"Missing required headers: {', '.join(missing)}")
        return rows, errors

    for line_number, raw in enumerate(reader, start=2):
        row = {
            (k or "").strip().lower(): (v or "").strip()
            for k, v in raw.items()
            if not isinstance(v, list)
        }
        if not any(row.values()):
            continue

        for field in ("Job Title", "Company", "Job Link"):
            if not row.get(field.lower()):
                errors.append(f"Row {line_number}: Missing {field}")
                break
        else:
            rows.append(row)

    return rows, errors

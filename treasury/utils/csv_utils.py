import csv
from io import StringIO
from typing import Dict, Iterable, List, Sequence


def rows_to_csv(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def csv_to_rows(content: str, required_headers: Sequence[str]) -> List[Dict[str, str]]:
    """Parse ``content`` into dicts keyed by lower-cased header.

    Raises ``ValueError`` when one of ``required_headers`` is missing.
    """
    reader = csv.DictReader(StringIO(content.lstrip("\ufeff")))
    headers = [(name or "").strip().lower() for name in (reader.fieldnames or [])]
    missing = [name for name in required_headers if name not in headers]
    if missing:
        raise ValueError(f"CSV is missing required column(s): {', '.join(missing)}")

    rows: List[Dict[str, str]] = []
    for raw in reader:
        rows.append({(key or "").strip().lower(): (value or "").strip() for key, value in raw.items() if key})
    return rows

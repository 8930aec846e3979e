"""Reference enrichment worker.

Usage: python scripts/sample_worker.py "<transcript text>"

Prints one JSON object per line on stdout.  A keyword pass is emitted first
and a refined record with the extracted delay follows, which exercises the
overwrite behaviour of the result cache.
"""
from __future__ import annotations

import json
import re
import sys

AIRLINES = {
    "air india": "Air India",
    "indigo": "IndiGo",
    "vistara": "Vistara",
    "spicejet": "SpiceJet",
    "emirates": "Emirates",
    "lufthansa": "Lufthansa",
}

DELAY_PATTERN = re.compile(r"(\d+)\s*(?:min(?:ute)?s?|hours?|hrs?)", re.IGNORECASE)
ROUTE_PATTERN = re.compile(r"\bfrom\s+([A-Z]\w*(?:\s+[A-Z]\w*)*)\s+to\s+([A-Z]\w*(?:\s+[A-Z]\w*)*)")


def emit(record: dict) -> None:
    sys.stdout.write(json.dumps(record, ensure_ascii=False) + "\n")
    sys.stdout.flush()


def extract(text: str) -> dict:
    lowered = text.lower()
    record: dict[str, object] = {"transcript": text}
    for keyword, name in AIRLINES.items():
        if keyword in lowered:
            record["airline"] = name
            break
    route = ROUTE_PATTERN.search(text)
    if route:
        record["from"] = route.group(1)
        record["to"] = route.group(2)
    return record


def main(argv: list[str]) -> int:
    if len(argv) < 2 or not argv[1].strip():
        print("usage: sample_worker.py <transcript>", file=sys.stderr)
        return 2

    text = argv[1]
    record = extract(text)
    emit(record)

    delay = DELAY_PATTERN.search(text)
    if delay:
        minutes = int(delay.group(1))
        if "hour" in delay.group(0).lower() or "hr" in delay.group(0).lower():
            minutes *= 60
        emit({**record, "delay_min": minutes})
    else:
        print("no delay mentioned", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))

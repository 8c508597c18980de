"""Example usage of the ApiVeritas comparison engine."""

import json
import tempfile
from pathlib import Path

from apiveritas import ComparisonOptions, HtmlReporter, PayloadComparer

# Two snapshot runs of the same suite: the provider dropped a field,
# renamed a status value and added a property nobody asked for.
previous_run = {
    "Get_booking.json": {
        "id": "BK-1001",
        "status": "CONFIRMED",
        "guest": {"name": "Ada Lovelace", "email": "ada@example.com"},
        "rooms": [{"number": 12, "rate": 140.0}],
    },
    "List_rooms.json": [
        {"number": 12, "floor": 1},
        {"number": 14, "floor": 1},
    ],
}

latest_run = {
    "Get_booking.json": {
        "id": "BK-1001",
        "status": "confirmed",
        "guest": {"name": "Ada Lovelace"},
        "rooms": [{"number": 12, "rate": 140.0, "discount": 0.1}],
    },
    "List_rooms.json": [
        {"number": 12, "floor": 1},
        {"number": 14, "floor": 1},
    ],
}


def write_run(root: Path, folder: str, files: dict):
    run_dir = root / "bookings" / folder
    run_dir.mkdir(parents=True)
    for name, payload in files.items():
        (run_dir / name).write_text(json.dumps(payload, indent=2), encoding="utf-8")


with tempfile.TemporaryDirectory() as tmp:
    payloads = Path(tmp) / "payloads"
    write_run(payloads, "2025.06.01.090000", previous_run)
    write_run(payloads, "2025.06.02.090000", latest_run)

    for options in (
        ComparisonOptions(),
        ComparisonOptions(strict_values=False, strict_schema=False),
    ):
        print(f"Options: {options}")
        comparer = PayloadComparer(
            options,
            test_suite="bookings",
            payloads_root=payloads,
            reporter=HtmlReporter(Path(tmp) / "reports"),
        )
        verdict = comparer.compare_folders(*comparer.get_latest_two_payload_folders())

        print(f"  {verdict.matched_count} matched | {verdict.diff_count} differed "
              f"| {verdict.total_files} total files")
        for result in verdict.results:
            print(f"  {result.file_name}: {'MATCH' if result.matched else 'DIFFERENCES'}")
            for diff in result.differences:
                print(f"    [{diff.severity.value}] {diff.kind.value} at {diff.path}: {diff.message}")
        print(f"  Report: {verdict.report_path}")
        print()

"""Flat CSV interchange format for completed sets.

Each rep group becomes one row; rows of the same set share the set columns.
"""
from __future__ import annotations
import csv
import datetime
import io
from typing import Dict, Iterable, List, Optional

from errors import FormatError
from models import CompletedSet, RepGroup, as_utc, sorted_rep_groups

CSV_HEADERS = (
    "setId",
    "sessionId",
    "exerciseId",
    "plannedSetId",
    "completedAt",
    "notes",
    "repGroupOrder",
    "reps",
    "weight",
)
HEADER_LINE = ",".join(CSV_HEADERS)


def format_timestamp(value: datetime.datetime) -> str:
    """Return ``value`` as an ISO-8601 UTC string ending in ``Z``."""
    value = as_utc(value)
    timespec = "milliseconds" if value.microsecond % 1000 == 0 else "microseconds"
    return value.isoformat(timespec=timespec).replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime.datetime:
    text = text.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.datetime.fromisoformat(text))


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def export_filename(today: Optional[datetime.date] = None) -> str:
    day = today or datetime.date.today()
    return f"workout-history-{day.isoformat()}.csv"


def export_completed_sets(sets: Iterable[CompletedSet]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    # a bare CR is not in the line terminator, so the default quoting misses it
    quoted = csv.writer(output, lineterminator="\n", quoting=csv.QUOTE_ALL)
    writer.writerow(CSV_HEADERS)
    for completed in sets:
        for group in completed.rep_groups:
            row = [
                completed.id,
                completed.session_id,
                completed.exercise_id,
                completed.planned_set_id or "",
                format_timestamp(completed.completed_at),
                completed.notes or "",
                group.order,
                group.reps,
                _format_number(group.weight),
            ]
            if any("\r" in str(field) for field in row):
                quoted.writerow(row)
            else:
                writer.writerow(row)
    return output.getvalue()


def parse_completed_sets(text: str) -> List[CompletedSet]:
    """Rebuild completed sets from CSV text.

    Raises :class:`FormatError` on a header mismatch or a malformed row; no
    partial result is ever returned.
    """
    content = text.strip()
    header, _, body = content.partition("\n")
    if header.strip() != HEADER_LINE:
        raise FormatError(
            "Invalid CSV format: header does not match expected columns", line=1
        )
    if not body.strip():
        return []

    grouped: Dict[str, dict] = {}
    reader = csv.reader(io.StringIO(body, newline=""))
    for row in reader:
        line = reader.line_num + 1
        if not row or (len(row) == 1 and not row[0].strip()):
            continue
        if len(row) != len(CSV_HEADERS):
            raise FormatError(
                f"Invalid CSV format at line {line}: expected "
                f"{len(CSV_HEADERS)} columns, got {len(row)}",
                line=line,
            )
        row[0] = row[0].lstrip()
        row[-1] = row[-1].rstrip()
        (
            set_id,
            session_id,
            exercise_id,
            planned_set_id,
            completed_at,
            notes,
            group_order,
            reps,
            weight,
        ) = row
        try:
            numbers = (int(group_order), int(reps), float(weight))
        except ValueError as e:
            raise FormatError(f"Invalid CSV format at line {line}: {e}", line=line)
        group = RepGroup(order=numbers[0], reps=numbers[1], weight=numbers[2])
        entry = grouped.get(set_id)
        if entry is None:
            try:
                timestamp = parse_timestamp(completed_at)
            except ValueError:
                raise FormatError(
                    f"Invalid CSV format at line {line}: bad timestamp {completed_at!r}",
                    line=line,
                )
            entry = {
                "session_id": session_id,
                "exercise_id": exercise_id,
                "planned_set_id": planned_set_id or None,
                "completed_at": timestamp,
                "notes": notes or None,
                "rep_groups": [],
            }
            grouped[set_id] = entry
        entry["rep_groups"].append(group)

    result: List[CompletedSet] = []
    for set_id, entry in grouped.items():
        entry["rep_groups"] = sorted_rep_groups(entry["rep_groups"])
        result.append(CompletedSet(id=set_id, **entry))
    return result

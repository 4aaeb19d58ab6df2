"""CSV reading of ledger events and writing of account snapshots.

Input rows look like::

    type,client,tx,amount
    deposit,1,1,1.0
    dispute,1,1,

The amount column may be left empty, or omitted entirely, on dispute,
resolve and chargeback rows. Output has one row per client::

    client,available,held,total,locked
    1,1.5,0,1.5,false
"""

import csv
from decimal import Decimal
from typing import Callable, Dict, Iterable, Iterator, Optional, TextIO

from pydantic import ValidationError

from exceptions import InvalidRecordError
from models import AccountSnapshot, Event

EVENT_FIELDS = ("type", "client", "tx", "amount")
SNAPSHOT_FIELDS = ("client", "available", "held", "total", "locked")


def parse_record(row: Dict[Optional[str], object], line_num: int) -> Event:
    """Validate one ``csv.DictReader`` row into an Event."""
    if None in row:
        raise InvalidRecordError(line_num, "too many fields")

    data = {
        key.strip(): value.strip() if isinstance(value, str) else value
        for key, value in row.items()
    }
    try:
        return Event.model_validate(data)
    except ValidationError as e:
        reason = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc']) or 'record'}: {error['msg']}"
            for error in e.errors()
        )
        raise InvalidRecordError(line_num, reason) from e


def read_events(
    stream: TextIO,
    on_error: Optional[Callable[[InvalidRecordError], None]] = None,
) -> Iterator[Event]:
    """Yield events from a CSV stream in file order.

    Malformed rows are passed to ``on_error`` and skipped; without a
    callback the first one raises InvalidRecordError. Bytes that cannot
    be decoded, or text the csv module cannot tokenise, leave the rest of
    the stream unreadable and always raise InvalidRecordError.
    """
    reader = csv.DictReader(stream, skipinitialspace=True)
    try:
        fieldnames = reader.fieldnames
    except (UnicodeDecodeError, csv.Error) as e:
        raise InvalidRecordError(1, f"unreadable header: {e}") from e
    if fieldnames is None:
        return
    header = [name.strip() for name in fieldnames]
    missing = [name for name in EVENT_FIELDS[:3] if name not in header]
    if missing:
        # a broken header makes every row unreadable
        raise InvalidRecordError(1, f"missing columns: {', '.join(missing)}")

    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except UnicodeDecodeError as e:
            # decoding fails before the reader counts the line
            raise InvalidRecordError(reader.line_num + 1, f"unreadable content: {e}") from e
        except csv.Error as e:
            raise InvalidRecordError(reader.line_num, f"unreadable content: {e}") from e
        try:
            yield parse_record(row, reader.line_num)
        except InvalidRecordError as e:
            if on_error is None:
                raise
            on_error(e)


def format_decimal(value: Decimal) -> str:
    """Render a balance at its natural precision, never in exponent form."""
    return format(value, "f")


def snapshot_row(snapshot: AccountSnapshot) -> Dict[str, str]:
    return {
        "client": str(snapshot.client),
        "available": format_decimal(snapshot.available),
        "held": format_decimal(snapshot.held),
        "total": format_decimal(snapshot.total),
        "locked": "true" if snapshot.locked else "false",
    }


def write_snapshots(snapshots: Iterable[AccountSnapshot], stream: TextIO) -> int:
    """Write snapshots sorted by client; returns the number of rows written."""
    writer = csv.DictWriter(stream, fieldnames=SNAPSHOT_FIELDS, lineterminator="\n")
    writer.writeheader()
    count = 0
    for snapshot in sorted(snapshots, key=lambda s: s.client):
        writer.writerow(snapshot_row(snapshot))
        count += 1
    return count

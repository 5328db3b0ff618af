"""Text trace records.

One record per line, whitespace separated:

    <time> <src_addr> <src_port> <dst_addr> <dst_port> <length> [<weight>]

Fields are read left to right and reading stops at the first integer field that does not
convert. Six fields are required; a seventh non-integer token simply means "no weight" and
any further tokens are ignored. The record text itself is carried through to the output.
"""
from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, Optional, TextIO

from wfq_simulation.errors import MalformedRecordError
from wfq_simulation.flow import FlowKey

MIN_FIELDS = 6

# Record text is passed through untouched: undecodable bytes survive as surrogates and
# line endings other than the final "\n" are kept.
TRACE_ENCODING = "utf-8"
TRACE_ERRORS = "surrogateescape"

_INT_RE = re.compile(r"[+-]?\d+")


def _parse_int(token: str) -> Optional[int]:
    if _INT_RE.fullmatch(token) is None:
        return None
    return int(token)


@dataclass(frozen=True)
class TraceRecord:
    arrival: int
    flow_key: FlowKey
    length: int
    weight: Optional[int]
    text: str


def parse_record(line: str) -> TraceRecord:
    """Parse one trace line. Raises MalformedRecordError when it cannot be accepted."""
    text = line.rstrip("\n")
    tokens = text.split()

    arrival = _parse_int(tokens[0]) if tokens else None
    if arrival is None:
        raise MalformedRecordError(text, "0 fields")

    endpoints = tokens[1:5]
    if len(endpoints) < 4:
        raise MalformedRecordError(text, f"{1 + len(endpoints)} fields")

    length = _parse_int(tokens[5]) if len(tokens) > 5 else None
    if length is None:
        raise MalformedRecordError(text, "5 fields")
    if length < 0:
        raise MalformedRecordError(text, f"negative length {length}")

    weight = _parse_int(tokens[6]) if len(tokens) > 6 else None

    src_addr, src_port, dst_addr, dst_port = endpoints
    return TraceRecord(
        arrival=arrival,
        flow_key=FlowKey(src_addr, src_port, dst_addr, dst_port),
        length=length,
        weight=weight,
        text=text,
    )


def open_trace_stream(binary: BinaryIO) -> TextIO:
    """Text view of a binary trace stream that round-trips arbitrary bytes."""
    return io.TextIOWrapper(binary, encoding=TRACE_ENCODING, errors=TRACE_ERRORS, newline="")


def read_records(lines: Iterable[str]) -> Iterator[TraceRecord]:
    """Yield the accepted records of a trace, silently skipping malformed lines."""
    for line_no, line in enumerate(lines, start=1):
        try:
            yield parse_record(line)
        except MalformedRecordError as e:
            logging.debug(f"Skipping line {line_no}: {e.reason}")


def format_dispatch(start: int, payload: str) -> str:
    """Output line for a dispatched packet: '<start>: <record text>'."""
    return f"{start}: {payload}"

from __future__ import annotations

import os
from dataclasses import asdict
from pathlib import Path
from typing import IO, Any, Iterator, Mapping

import orjson

from sugoroku.core.events.base import Event
from sugoroku.utils.numbers import wide_ints_as_str


class JsonlEventStore:
    """
    Append-only JSONL event log.

    - One event per line, keys sorted, in publish order.
    - fsync is optional; the autosave snapshot is the durable state, this
      log is for diagnostics and replay checks.
    """

    def __init__(self, *, path: Path, fsync: bool = False) -> None:
        self._path = path
        self._fsync = fsync
        self._fh: IO[bytes] | None = None

        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        if self._fh is not None:
            return
        self._fh = self._path.open("ab")

    def close(self) -> None:
        if self._fh is None:
            return
        try:
            self._fh.flush()
            if self._fsync:
                os.fsync(self._fh.fileno())
        finally:
            self._fh.close()
            self._fh = None

    def append(self, event: Event) -> None:
        fh = self._fh
        if fh is None:
            fh = self._fh = self._path.open("ab")

        line = orjson.dumps(event_to_dict(event), option=orjson.OPT_SORT_KEYS)
        fh.write(line + b"\n")
        fh.flush()
        if self._fsync:
            os.fsync(fh.fileno())

    def iter_events(self) -> Iterator[Mapping[str, Any]]:
        if not self._path.exists():
            return
        with self._path.open("rb") as fh:
            for line in fh:
                s = line.strip()
                if s:
                    yield orjson.loads(s)

    def read_all(self) -> list[Mapping[str, Any]]:
        return list(self.iter_events())


def event_to_dict(event: Event) -> dict[str, Any]:
    # orjson handles UUID and datetime natively; costs and credits may not fit 64 bits
    d = wide_ints_as_str(asdict(event))
    d["event_type"] = event.event_type
    return d

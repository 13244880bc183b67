#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Result loading after a completed session.

Scripts yield an ordered mapping of the names they created; functions yield
their result values in call order. Callers that want the names to appear in
their own scope call ``LoadResult.inject(globals())``.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional, Tuple, Union

from .data.backends import PickleBackend
from .descriptor import InvocationDescriptor
from .record import OUTPUT_FILENAME, TRANSCRIPT_FILENAME, ExecutionRecord
from .targets import InvocationStyle
from .utils.exceptions import IntegrityError, SerializationError
from .utils.logger import ModernLogger


@dataclass
class LoadResult:
    """Caller-visible outcome of one invocation."""

    target: str
    style: InvocationStyle
    location: str
    loaded: bool = True
    bindings: Dict[str, Any] = field(default_factory=OrderedDict)
    results: List[Any] = field(default_factory=list)
    transcript: str = ""
    failed: bool = False
    error: Optional[str] = None

    @property
    def transcript_path(self) -> str:
        return str(Path(self.location).parent / TRANSCRIPT_FILENAME)

    def inject(self, namespace: MutableMapping[str, Any]) -> None:
        """Bind every created name into ``namespace`` (e.g. ``globals()``)."""
        namespace.update(self.bindings)

    def unpack(self, arity: Optional[int] = None) -> Tuple[Any, ...]:
        """Results padded or cut to ``arity`` slots for positional assignment."""
        values = list(self.results)
        if arity is None:
            return tuple(values)
        values = values[:arity]
        values.extend([None] * (arity - len(values)))
        return tuple(values)


class ResultLoader(ModernLogger):
    """Decodes pulled execution records from the local state directory."""

    def __init__(self, state_dir: Union[str, Path], backend: Optional[PickleBackend] = None) -> None:
        ModernLogger.__init__(self, name="ResultLoader")
        self.state_dir = Path(state_dir)
        self._backend = backend

    def record_path(self, descriptor: InvocationDescriptor) -> Path:
        return self.state_dir / descriptor.result_dir_name / OUTPUT_FILENAME

    def load(self, descriptor: InvocationDescriptor) -> LoadResult:
        """
        Decode the record for ``descriptor``.

        Raises:
            IntegrityError: If the record is missing, unreadable or mismatched
        """
        path = self.record_path(descriptor)
        if descriptor.options.no_load:
            self.info("Not loading variables locally; find output at %s", path)
            return LoadResult(
                target=descriptor.target,
                style=descriptor.style,
                location=str(path),
                loaded=False,
            )

        record = self._read_record(path, descriptor)
        if record.failed:
            self.warning(
                "'%s' raised an error remotely; see the transcript at %s",
                descriptor.target,
                path.parent / TRANSCRIPT_FILENAME,
            )

        result = LoadResult(
            target=descriptor.target,
            style=descriptor.style,
            location=str(path),
            transcript=record.transcript,
            failed=record.failed,
            error=record.error,
        )
        if descriptor.is_script:
            result.bindings = OrderedDict(record.bindings)
            self.info("Loaded %d variables", len(result.bindings))
        else:
            result.results = list(record.results) if record.results else []
            self.info("Loaded %d results", len(result.results))
        return result

    def _read_record(self, path: Path, descriptor: InvocationDescriptor) -> ExecutionRecord:
        if not path.is_file():
            raise IntegrityError(
                "Session completed but no execution record was found",
                path=str(path),
                target=descriptor.target,
            )
        backend = self._backend or PickleBackend(
            compression=descriptor.record_compression,
            max_payload_bytes=descriptor.max_payload_bytes,
        )
        try:
            record = backend.load_from(path)
        except SerializationError as exc:
            raise IntegrityError(
                "Execution record is unreadable",
                path=str(path),
                target=descriptor.target,
                cause=exc,
            ) from exc
        if not isinstance(record, ExecutionRecord) or record.target != descriptor.target:
            raise IntegrityError(
                "Execution record does not belong to this invocation",
                path=str(path),
                target=descriptor.target,
            )
        return record


__all__ = ["LoadResult", "ResultLoader"]

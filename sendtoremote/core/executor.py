#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Remote executor: runs one invocation on the remote host.

The executor receives everything it needs as a ``RemoteContext`` value, so
it can be driven directly in tests. ``sendtoremote.runner`` builds the
context from the mirrored descriptor and calls ``RemoteExecutor.run``.

Whatever the target does, ``run`` always ends by writing an
``ExecutionRecord``: a failing target produces a record whose transcript
holds the traceback, so the client can tell "ran and failed" from "never ran".
"""

import builtins
import importlib.util
import os
import shutil
import sys
from collections import OrderedDict
from contextlib import contextmanager, redirect_stderr, redirect_stdout
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, TextIO, Tuple

from .data.backends import PickleBackend
from .data.config import DEFAULT_MAX_PAYLOAD_BYTES, CompressionAlgorithm
from .descriptor import InvocationDescriptor
from .record import OUTPUT_FILENAME, TRANSCRIPT_FILENAME, ExecutionRecord
from .targets import InvocationStyle, is_script_path, resolve_callable
from .utils.exceptions import ExceptionFormatter, SerializationError, TargetResolutionError
from .utils.logger import ModernLogger
from .utils.paths import remote_join


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_machinery(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


@dataclass(frozen=True)
class RemoteContext:
    """
    Explicit execution context for one remote run.

    Attributes:
        target: Routine to run
        style: Script or Function
        result_dir: Directory receiving the transcript and output record
        working_dir: Directory to run the target from
        search_path: Directories prepended to ``sys.path``
        args: Positional arguments (Function only)
        result_arity: Number of result slots (Function only)
        compression: Compression of the written record
        max_payload_bytes: Largest record the executor will write
    """

    target: str
    style: InvocationStyle
    result_dir: str
    working_dir: str
    search_path: Tuple[str, ...] = ()
    args: Tuple[Any, ...] = ()
    result_arity: Optional[int] = None
    compression: CompressionAlgorithm = CompressionAlgorithm.NONE
    max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES

    @classmethod
    def from_descriptor(
        cls,
        descriptor: InvocationDescriptor,
        state_dir: Optional[str] = None,
        remote_root: Optional[str] = None,
    ) -> "RemoteContext":
        """
        Rewrite a descriptor's local paths under the remote root.

        Args:
            descriptor: Descriptor loaded from the mirrored state directory
            state_dir: Actual mirrored state directory (defaults to the one
                derived from the descriptor)
            remote_root: Override of ``descriptor.options.remote_root``
        """
        root = os.path.expanduser(remote_root or descriptor.options.remote_root)
        remote_state = state_dir or remote_join(root, descriptor.state_dir)
        return cls(
            target=descriptor.target,
            style=descriptor.style,
            result_dir=os.path.join(remote_state, descriptor.result_dir_name),
            working_dir=remote_join(root, descriptor.working_dir),
            search_path=tuple(remote_join(root, entry) for entry in descriptor.manifest),
            args=descriptor.args,
            result_arity=descriptor.result_arity,
            compression=descriptor.record_compression,
            max_payload_bytes=descriptor.max_payload_bytes,
        )


class _TeeStream:
    """Write-through stream copying output to the terminal and the transcript."""

    def __init__(self, primary: TextIO, transcript: TextIO) -> None:
        self._primary = primary
        self._transcript = transcript

    @property
    def encoding(self) -> str:
        return getattr(self._primary, "encoding", None) or "utf-8"

    def write(self, text: str) -> int:
        self._primary.write(text)
        self._transcript.write(text)
        self._transcript.flush()
        return len(text)

    def writelines(self, lines) -> None:
        for line in lines:
            self.write(line)

    def flush(self) -> None:
        self._primary.flush()
        self._transcript.flush()

    def isatty(self) -> bool:
        return False


class RemoteExecutor(ModernLogger):
    """Executes the target described by a ``RemoteContext`` and records the outcome."""

    def __init__(self, context: RemoteContext, backend: Optional[PickleBackend] = None) -> None:
        ModernLogger.__init__(self, name="RemoteExecutor")
        self.context = context
        self.backend = backend or PickleBackend(
            compression=context.compression,
            max_payload_bytes=context.max_payload_bytes,
        )

    @property
    def result_dir(self) -> Path:
        return Path(self.context.result_dir)

    def run(self) -> ExecutionRecord:
        """Run the target and persist its record. Never raises for target failures."""
        self._extend_search_path()
        self._reset_result_dir()

        record = ExecutionRecord(
            target=self.context.target,
            style=self.context.style,
            started_at=_utcnow(),
        )
        transcript_path = self.result_dir / TRANSCRIPT_FILENAME
        previous_cwd = os.getcwd()

        with open(transcript_path, "a", encoding="utf-8") as transcript:
            with self._capture(transcript):
                print("Running {0}".format(self.context.target))
                try:
                    os.chdir(self.context.working_dir)
                    if self.context.style is InvocationStyle.SCRIPT:
                        self._run_script(record)
                    else:
                        self._run_function(record)
                except SystemExit as exc:
                    if exc.code not in (None, 0):
                        self._record_failure(record, exc)
                except (Exception, KeyboardInterrupt) as exc:
                    self._record_failure(record, exc)
                finally:
                    os.chdir(previous_cwd)
                print("Saving data")

        record.transcript = transcript_path.read_text(encoding="utf-8")
        record.finished_at = _utcnow()
        self._persist(record)
        return record

    def _extend_search_path(self) -> None:
        for entry in reversed(self.context.search_path):
            if entry not in sys.path:
                sys.path.insert(0, entry)
        importlib.invalidate_caches()

    def _reset_result_dir(self) -> None:
        if self.result_dir.exists():
            shutil.rmtree(self.result_dir)
        self.result_dir.mkdir(parents=True)
        self.debug("Reset result directory %s", self.result_dir)

    @contextmanager
    def _capture(self, transcript: TextIO) -> Iterator[None]:
        stdout = _TeeStream(sys.stdout, transcript)
        stderr = _TeeStream(sys.stderr, transcript)
        with redirect_stdout(stdout), redirect_stderr(stderr):
            yield

    def _record_failure(self, record: ExecutionRecord, exc: BaseException) -> None:
        record.failed = True
        record.error = ExceptionFormatter.format_exception(exc)
        print(record.error, file=sys.stderr)

    def _script_namespace(self) -> Tuple[Any, Dict[str, Any]]:
        target = self.context.target
        if is_script_path(target):
            path = os.path.abspath(target)
            with open(path, "rb") as handle:
                code = compile(handle.read(), path, "exec")
            namespace: Dict[str, Any] = {
                "__name__": "__main__",
                "__file__": path,
                "__package__": None,
                "__spec__": None,
                "__loader__": None,
            }
        else:
            spec = importlib.util.find_spec(target)
            if spec is None or spec.loader is None or not hasattr(spec.loader, "get_code"):
                raise TargetResolutionError(
                    "Script '{0}' cannot be found on the remote search path".format(target),
                    target=target,
                )
            code = spec.loader.get_code(spec.name)
            if code is None:
                raise TargetResolutionError(
                    "Script '{0}' has no code to run".format(target), target=target
                )
            namespace = {
                "__name__": "__main__",
                "__file__": spec.origin,
                "__package__": spec.parent,
                "__spec__": spec,
                "__loader__": spec.loader,
                "__cached__": spec.cached,
            }
        namespace["__doc__"] = None
        namespace["__builtins__"] = builtins
        return code, namespace

    def _run_script(self, record: ExecutionRecord) -> None:
        code, namespace = self._script_namespace()
        before = set(namespace)
        try:
            exec(code, namespace)
        finally:
            record.bindings = self._created_bindings(namespace, before)

    def _created_bindings(self, namespace: Dict[str, Any], before: set) -> "OrderedDict[str, Any]":
        created: "OrderedDict[str, Any]" = OrderedDict()
        for name, value in namespace.items():
            if name in before or _is_machinery(name):
                continue
            try:
                self.backend.serialize(value)
            except SerializationError:
                print(
                    "Skipping '{0}': {1} values cannot be saved".format(name, type(value).__name__)
                )
                continue
            created[name] = value
        return created

    def _run_function(self, record: ExecutionRecord) -> None:
        func = resolve_callable(self.context.target)
        arity = self.context.result_arity or 0

        value = func(*self.context.args)
        if arity == 0:
            record.results = []
        elif arity == 1:
            record.results = [value]
        else:
            try:
                values = list(value)
            except TypeError:
                raise ValueError(
                    "{0} returned a single {1} but {2} results were requested".format(
                        self.context.target, type(value).__name__, arity
                    )
                ) from None
            if len(values) < arity:
                raise ValueError(
                    "{0} returned {1} values but {2} were requested".format(
                        self.context.target, len(values), arity
                    )
                )
            record.results = values[:arity]

    def _persist(self, record: ExecutionRecord) -> None:
        output_path = self.result_dir / OUTPUT_FILENAME
        try:
            self.backend.dump_to(output_path, record)
        except SerializationError as exc:
            # Keep the transcript and diagnostic even when the payload cannot be saved.
            message = "Results could not be saved: {0}".format(exc)
            with open(self.result_dir / TRANSCRIPT_FILENAME, "a", encoding="utf-8") as transcript:
                transcript.write(message + "\n")
            fallback = replace(
                record,
                bindings=OrderedDict(),
                results=[],
                failed=True,
                error=message,
                transcript=record.transcript + message + "\n",
            )
            self.backend.dump_to(output_path, fallback)
        self.info("Saved record for '%s' to %s", record.target, output_path)


__all__ = ["RemoteContext", "RemoteExecutor"]

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Remote entry point: ``python -m sendtoremote.runner``.

Started by the session controller from the mirrored state directory on the
remote host. Takes no arguments: the descriptor in the current directory says
what to run. The process terminates unconditionally once the run is over, so
a screen session never lingers after completion, even when the target left
non-daemon threads behind or the record could not be written.
"""

import os
import sys
from pathlib import Path
from typing import Optional, Union

from .core.descriptor import DescriptorStore
from .core.executor import RemoteContext, RemoteExecutor
from .core.utils.exceptions import ExceptionFormatter, SendToRemoteError


def _execute(base: Path) -> int:
    try:
        descriptor = DescriptorStore(base).load()
    except SendToRemoteError as exc:
        print("Cannot start remote execution: {0}".format(exc), file=sys.stderr)
        return 1
    context = RemoteContext.from_descriptor(descriptor, state_dir=str(base))
    RemoteExecutor(context).run()
    print("Quitting")
    return 0


def main(
    state_dir: Optional[Union[str, Path]] = None,
    exit_process: bool = True,
) -> int:
    base = Path(state_dir) if state_dir is not None else Path.cwd()
    code = 1
    try:
        code = _execute(base)
    except Exception as exc:
        print(
            "Remote execution aborted before its record was saved:\n{0}".format(
                ExceptionFormatter.format_exception(exc)
            ),
            file=sys.stderr,
        )
    finally:
        if exit_process:
            sys.stdout.flush()
            sys.stderr.flush()
            os._exit(code)
    return code


if __name__ == "__main__":
    main()

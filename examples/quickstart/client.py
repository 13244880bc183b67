#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Quickstart caller: run a function, a script and a decorated function remotely.

    SENDTOREMOTE_EXAMPLE_HOST=user@cluster python client.py

If the ssh connection drops during a call, run ``sendtoremote resume``
from the same machine to reattach and collect the results.
"""

from sendtoremote import RemoteInvoker

from jobs import HOST, min_max


class QuickstartDemo:
    """
    Demonstrates function calls, script runs and the decorator proxy.
    """

    def __init__(self) -> None:
        self._invoker = RemoteInvoker()

    def run(self) -> None:
        outcome = self._invoker.invoke("jobs:double", HOST, args=[21], result_arity=1)
        if not outcome.completed:
            print(outcome.notice)
            return
        print(f"double(21) -> {outcome.results[0]}")

        outcome = self._invoker.invoke("jobs:describe_host", HOST, result_arity=1)
        print(f"remote host -> {outcome.results[0]}")

        outcome = self._invoker.invoke("setup_env", HOST)
        if outcome.completed:
            outcome.result.inject(globals())
            print(f"setup_env created {sorted(outcome.bindings)}; total={outcome.bindings['total']}")

        print(f"min_max -> {min_max([4, 8, 15, 16, 23, 42])}")


if __name__ == "__main__":
    QuickstartDemo().run()

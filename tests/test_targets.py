#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import sys

import pytest

from sendtoremote.core.targets import (
    InvocationSpec,
    InvocationStyle,
    resolve_callable,
    resolve_invocation_spec,
    split_function_target,
)
from sendtoremote.core.utils.exceptions import TargetResolutionError, UsageError


@pytest.fixture
def modules(project):
    (project / "tgt_jobs.py").write_text(
        "def double(x):\n    return 2 * x\n\n"
        "class Tools:\n    @staticmethod\n    def halve(x):\n        return x / 2\n\n"
        "VALUE = 3\n"
    )
    (project / "tgt_setup.py").write_text("x = 1\n")
    scripts = project / "scripts"
    scripts.mkdir()
    (scripts / "prepare.py").write_text("y = 2\n")
    return project


@pytest.mark.parametrize(
    "target, expected",
    [
        ("pkg.mod:func", ("pkg.mod", "func")),
        ("pkg.mod.func", ("pkg.mod", "func")),
        ("double", ("double", "double")),
        ("mod:Cls.method", ("mod", "Cls.method")),
    ],
)
def test_split_function_target(target, expected):
    assert split_function_target(target) == expected


def test_split_function_target_rejects_empty_parts():
    with pytest.raises(TargetResolutionError):
        split_function_target(":func")


def test_style_is_inferred_from_target_and_call_shape(modules):
    assert resolve_invocation_spec("tgt_setup") == InvocationSpec(InvocationStyle.SCRIPT)
    assert resolve_invocation_spec("scripts/prepare.py", working_dir=str(modules)).style is InvocationStyle.SCRIPT
    assert resolve_invocation_spec("tgt_jobs:double") == InvocationSpec(InvocationStyle.FUNCTION, 0)
    assert resolve_invocation_spec("tgt_jobs.double", args=[1], result_arity=1) == InvocationSpec(
        InvocationStyle.FUNCTION, 1
    )


def test_explicit_style_wins(modules):
    spec = resolve_invocation_spec("tgt_jobs", style=InvocationStyle.FUNCTION)

    assert spec.style is InvocationStyle.FUNCTION


def test_script_call_shape_errors(modules):
    with pytest.raises(UsageError, match="Cannot pass input arguments to a script"):
        resolve_invocation_spec("tgt_setup", args=[1], style="script")
    with pytest.raises(UsageError, match="Cannot request output arguments from a script"):
        resolve_invocation_spec("tgt_setup", result_arity=2, style="script")
    with pytest.raises(UsageError):
        InvocationSpec(InvocationStyle.FUNCTION, -1)


def test_unresolvable_targets(modules):
    with pytest.raises(TargetResolutionError, match="isn't on the search path"):
        resolve_invocation_spec("tgt_nowhere")
    with pytest.raises(TargetResolutionError, match="does not exist"):
        resolve_invocation_spec("scripts/missing.py", working_dir=str(modules))
    with pytest.raises(TargetResolutionError):
        resolve_invocation_spec("tgt_nowhere:double")
    with pytest.raises(UsageError):
        resolve_invocation_spec("  ")


def test_resolve_callable_walks_attributes(modules):
    assert resolve_callable("tgt_jobs:double")(4) == 8
    assert resolve_callable("tgt_jobs:Tools.halve")(4) == 2

    with pytest.raises(TargetResolutionError, match="not callable"):
        resolve_callable("tgt_jobs:VALUE")


def test_resolving_a_package_module_does_not_execute_it(project):
    package = project / "tgt_lazy"
    package.mkdir()
    (package / "__init__.py").write_text("")
    (package / "boom.py").write_text("raise RuntimeError('executed during resolution')\n")

    spec = resolve_invocation_spec("tgt_lazy.boom")

    assert spec.style is InvocationStyle.SCRIPT
    assert "tgt_lazy.boom" not in sys.modules

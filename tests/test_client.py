#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
End-to-end tests for RemoteInvoker against a simulated host.
"""

import threading
from pathlib import Path

import pytest

from sendtoremote.client import RemoteInvoker
from sendtoremote.core.descriptor import DescriptorStore
from sendtoremote.core.session import RESUME_NOTICE, SessionState
from sendtoremote.core.utils.exceptions import (
    DescriptorNotFoundError,
    TargetResolutionError,
    TransferError,
    UsageError,
)


def _write(project: Path, name: str, source: str) -> None:
    (project / name).write_text(source, encoding="utf-8")


def test_function_invocation_brings_back_result(project, client_config, make_fake_host):
    _write(project, "e2e_double.py", "def double(x):\n    return 2 * x\n")
    host = make_fake_host()
    invoker = RemoteInvoker(config=client_config, runner=host)

    outcome = invoker.invoke(
        "e2e_double:double", "cluster", args=[4], result_arity=1, search_path=[str(project)]
    )

    assert outcome.completed
    assert outcome.results == [8]
    assert host.remote_exit_codes == [0]
    assert [argv[0] for argv, _ in host.calls] == ["rsync", "ssh", "rsync"]
    assert outcome.session.history == [
        SessionState.NOT_STARTED,
        SessionState.LAUNCHING,
        SessionState.ATTACHED,
        SessionState.COMPLETED,
    ]


def test_push_mirrors_manifest_and_state_dir(project, client_config, make_fake_host, remote_root):
    _write(project, "e2e_mirror.py", "def one():\n    return 1\n")
    host = make_fake_host()
    invoker = RemoteInvoker(config=client_config, runner=host)

    outcome = invoker.invoke("e2e_mirror:one", "cluster", result_arity=1, search_path=[str(project)])

    push_argv, _ = host.calls[0]
    assert push_argv[1:4] == ["-avzdmR", "--no-r", "--delete"]
    assert push_argv[-1] == "cluster:{0}".format(remote_root)
    assert str(project) + "/" in push_argv
    assert client_config.state_dir + "/" in push_argv
    mirrored = Path(str(remote_root) + str(project)) / "e2e_mirror.py"
    assert mirrored.is_file()
    assert outcome.results == [1]


def test_script_invocation_returns_created_variables(project, client_config, make_fake_host):
    _write(project, "e2e_setup.py", "x = 10\nprint('configured')\n")
    invoker = RemoteInvoker(config=client_config, runner=make_fake_host())

    outcome = invoker.invoke("e2e_setup", "cluster", search_path=[str(project)])

    assert outcome.completed
    assert outcome.bindings == {"x": 10}
    assert "configured" in outcome.result.transcript
    assert "Running e2e_setup" in outcome.result.transcript

    namespace = {}
    outcome.result.inject(namespace)
    assert namespace == {"x": 10}


def test_abort_then_resume_loads_results(project, client_config, make_fake_host):
    _write(project, "e2e_resume.py", "def double(x):\n    return 2 * x\n")
    host = make_fake_host((-1, False), (1, True))

    outcome = RemoteInvoker(config=client_config, runner=host).invoke(
        "e2e_resume:double", "cluster", args=[4], result_arity=1, search_path=[str(project)]
    )

    assert not outcome.completed
    assert outcome.session.resumable
    assert outcome.notice == RESUME_NOTICE
    assert outcome.result is None
    assert [argv[0] for argv, _ in host.calls] == ["rsync", "ssh"]

    resumed = RemoteInvoker(config=client_config, runner=host).resume()

    assert resumed.completed
    assert resumed.results == [8]
    reattach = host.ssh_calls[-1]
    assert reattach == ["ssh", "-t", "cluster", "screen -r sendtoremote-e2e_resume_double"]


def test_no_reconnect_runs_over_plain_ssh(project, client_config, make_fake_host):
    _write(project, "e2e_direct.py", "def triple(x):\n    return 3 * x\n")
    host = make_fake_host()
    invoker = RemoteInvoker(config=client_config, runner=host)

    outcome = invoker.invoke(
        "e2e_direct:triple", "cluster", "noreconnect",
        args=[2], result_arity=1, search_path=[str(project)],
    )

    assert outcome.results == [6]
    ssh_argv = host.ssh_calls[0]
    assert ssh_argv[:2] == ["ssh", "cluster"]
    assert "-t" not in ssh_argv
    assert ssh_argv[-1].endswith("python3 -m sendtoremote.runner")


def test_direct_mode_failure_is_not_resumable(project, client_config, make_fake_host):
    _write(project, "e2e_direct_fail.py", "def f():\n    return 1\n")
    host = make_fake_host((255, False))
    invoker = RemoteInvoker(config=client_config, runner=host)

    outcome = invoker.invoke(
        "e2e_direct_fail:f", "cluster", no_reconnect=True, search_path=[str(project)]
    )

    assert not outcome.completed
    assert not outcome.session.resumable
    assert "255" in outcome.notice


def test_remote_exception_is_recorded_not_raised(project, client_config, make_fake_host):
    _write(project, "e2e_boom.py", "def boom():\n    return 1 / 0\n")
    invoker = RemoteInvoker(config=client_config, runner=make_fake_host())

    outcome = invoker.invoke("e2e_boom:boom", "cluster", result_arity=1, search_path=[str(project)])

    assert outcome.completed
    assert outcome.result.failed
    assert "ZeroDivisionError" in outcome.result.error
    assert "ZeroDivisionError" in outcome.result.transcript
    assert Path(outcome.result.transcript_path).is_file()


def test_no_load_leaves_results_on_disk(project, client_config, make_fake_host):
    _write(project, "e2e_noload.py", "y = 5\n")
    invoker = RemoteInvoker(config=client_config, runner=make_fake_host())

    outcome = invoker.invoke("e2e_noload", "cluster", "NoLoad", search_path=[str(project)])

    assert outcome.completed
    assert outcome.result.loaded is False
    assert outcome.bindings == {}
    assert Path(outcome.result.location).is_file()


def test_finish_load_pulls_again(project, client_config, make_fake_host):
    _write(project, "e2e_again.py", "def pair():\n    return 1, 2\n")
    invoker = RemoteInvoker(config=client_config, runner=make_fake_host())
    invoker.invoke("e2e_again:pair", "cluster", result_arity=2, search_path=[str(project)])

    assert invoker.discard_results("e2e_again:pair") is True
    assert invoker.discard_results("e2e_again:pair") is False

    result = invoker.finish_load()
    assert result.unpack(2) == (1, 2)


def test_usage_errors_happen_before_any_transfer(project, client_config, make_runner):
    _write(project, "e2e_usage.py", "z = 1\n")
    runner = make_runner()
    invoker = RemoteInvoker(config=client_config, runner=runner)

    with pytest.raises(UsageError, match="Cannot pass input arguments to a script"):
        invoker.invoke(
            "e2e_usage", "cluster", args=[1], style="script", search_path=[str(project)]
        )

    with pytest.raises(TargetResolutionError):
        invoker.invoke("e2e_missing_module", "cluster", search_path=[str(project)])

    with pytest.raises(UsageError, match="no_load"):
        invoker.invoke("e2e_usage:f", "cluster", "noload", result_arity=1, search_path=[str(project)])

    with pytest.raises(UsageError, match="Argument 0"):
        invoker.invoke("e2e_usage:f", "cluster", args=[threading.Lock()], search_path=[str(project)])

    assert runner.calls == []
    assert not DescriptorStore(client_config.state_dir).exists()


def test_push_failure_raises_transfer_error(project, client_config, make_runner):
    _write(project, "e2e_push.py", "def f():\n    return 1\n")
    runner = make_runner(12)
    invoker = RemoteInvoker(config=client_config, runner=runner)

    with pytest.raises(TransferError) as excinfo:
        invoker.invoke("e2e_push:f", "cluster", search_path=[str(project)])

    assert excinfo.value.exit_code == 12
    assert excinfo.value.operation == "push"
    assert len(runner.calls) == 1
    assert invoker.last_descriptor().target == "e2e_push:f"


def test_resume_without_previous_invocation(client_config, make_runner):
    invoker = RemoteInvoker(config=client_config, runner=make_runner())

    with pytest.raises(DescriptorNotFoundError):
        invoker.resume()


def _remote_tree(remote_root):
    return sorted(
        str(path.relative_to(remote_root)) for path in Path(remote_root).rglob("*")
    )


def test_package_module_function_is_mirrored(project, client_config, make_fake_host, remote_root):
    package = project / "e2e_pkg"
    (package / "inner").mkdir(parents=True)
    (package / "__init__.py").write_text("")
    (package / "inner" / "__init__.py").write_text("")
    (package / "inner" / "ops.py").write_text("def double(x):\n    return 2 * x\n")
    host = make_fake_host()
    invoker = RemoteInvoker(config=client_config, runner=host)

    outcome = invoker.invoke(
        "e2e_pkg.inner.ops:double", "cluster", args=[4], result_arity=1, search_path=[str(project)]
    )

    push_argv, _ = host.calls[0]
    assert str(package) + "/" in push_argv
    assert str(package / "inner") + "/" in push_argv
    assert Path(str(remote_root) + str(package / "inner" / "ops.py")).is_file()
    assert host.remote_exit_codes == [0]
    assert not outcome.result.failed, outcome.result.error
    assert outcome.results == [8]


def test_script_file_in_subdirectory_is_mirrored(project, client_config, make_fake_host, remote_root):
    scripts = project / "e2e_scripts"
    scripts.mkdir()
    (scripts / "prepare.py").write_text("prepared = 3\n")
    host = make_fake_host()

    outcome = RemoteInvoker(config=client_config, runner=host).invoke(
        "e2e_scripts/prepare.py", "cluster", search_path=[str(project)]
    )

    assert str(scripts) + "/" in host.calls[0][0]
    assert Path(str(remote_root) + str(scripts / "prepare.py")).is_file()
    assert not outcome.result.failed, outcome.result.error
    assert outcome.bindings == {"prepared": 3}


def test_deleted_script_variables_are_not_returned(project, client_config, make_fake_host):
    _write(project, "e2e_scratch.py", "kept = 1\ntemporary = 2\ndel temporary\n")

    outcome = RemoteInvoker(config=client_config, runner=make_fake_host()).invoke(
        "e2e_scratch", "cluster", search_path=[str(project)]
    )

    assert outcome.bindings == {"kept": 1}


def test_repeated_push_mirrors_identical_tree(project, client_config, make_fake_host, remote_root):
    _write(project, "e2e_repeat.py", "def one():\n    return 1\n")
    host = make_fake_host()
    invoker = RemoteInvoker(config=client_config, runner=host)

    invoker.invoke("e2e_repeat:one", "cluster", result_arity=1, search_path=[str(project)])
    first_tree = _remote_tree(remote_root)
    invoker.invoke("e2e_repeat:one", "cluster", result_arity=1, search_path=[str(project)])

    pushes = [argv for argv, _ in host.calls if argv[0] == "rsync" and "--delete" in argv]
    assert len(pushes) == 2
    assert pushes[0] == pushes[1]
    assert _remote_tree(remote_root) == first_tree


def test_payload_limit_travels_with_the_descriptor(project, client_config, make_fake_host):
    _write(project, "e2e_big.py", "def big():\n    return b'x' * 100000\n")
    config = client_config.with_overrides(max_payload_bytes=8192)

    outcome = RemoteInvoker(config=config, runner=make_fake_host()).invoke(
        "e2e_big:big", "cluster", result_arity=1, search_path=[str(project)]
    )

    assert outcome.descriptor.max_payload_bytes == 8192
    assert outcome.result.failed
    assert "too large" in outcome.result.error
    assert outcome.results == []

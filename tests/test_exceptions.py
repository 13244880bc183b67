#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from sendtoremote.core.utils import format_exception_chain
from sendtoremote.core.utils.exceptions import (
    ExceptionFormatter,
    ExceptionTranslator,
    IntegrityError,
    SendToRemoteError,
    TransferError,
    UsageError,
)


def test_context_is_kept_and_rendered():
    error = TransferError("Transfer failed during push", operation="push", exit_code=12, command=None)

    assert error.context == {"operation": "push", "exit_code": 12}
    assert str(error) == "Transfer failed during push (operation='push', exit_code=12)"
    assert error.to_dict() == {
        "error": "TransferError",
        "message": "Transfer failed during push",
        "operation": "push",
        "exit_code": 12,
    }


def test_cause_is_summarised():
    cause = ValueError("bad")
    error = IntegrityError("Record unreadable", path="/x", cause=cause)

    assert error.to_dict()["cause"] == "ValueError: bad"


def test_translator_wraps_foreign_exceptions_once():
    original = UsageError("nope")

    assert ExceptionTranslator.as_send_error(original) is original

    wrapped = ExceptionTranslator.as_send_error(KeyError("k"), UsageError, target="t")
    assert isinstance(wrapped, UsageError)
    assert wrapped.context == {"target": "t"}
    assert isinstance(wrapped.cause, KeyError)


def test_formatter_renders_traceback_and_chain():
    try:
        try:
            raise OSError("disk")
        except OSError as inner:
            raise SendToRemoteError("outer") from inner
    except SendToRemoteError as exc:
        rendered = ExceptionFormatter.format_exception(exc)
        chain = format_exception_chain(exc)

    assert "Traceback" in rendered
    assert "OSError: disk" in rendered
    assert chain == "SendToRemoteError: outer <- OSError: disk"

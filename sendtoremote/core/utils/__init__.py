#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Utility exports for SendToRemote core.
"""

from .logger import ModernLogger
from .exceptions import *  # noqa: F401,F403
from .exceptions import ExceptionFormatter, ExceptionTranslator
from .paths import as_directory, remote_join, shell_path, target_dirname, to_posix_path
from .process import CommandRunner, SubprocessRunner, format_command

# Common formatter shortcuts
format_exception = ExceptionFormatter.format_exception
format_exception_chain = ExceptionFormatter.format_exception_chain
format_exception_summary = ExceptionFormatter.format_exception_summary

__all__ = [
    "ModernLogger",
    "CommandRunner",
    "SubprocessRunner",
    "ExceptionFormatter",
    "ExceptionTranslator",
    "as_directory",
    "format_command",
    "format_exception",
    "format_exception_chain",
    "format_exception_summary",
    "remote_join",
    "shell_path",
    "target_dirname",
    "to_posix_path",
]

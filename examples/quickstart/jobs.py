#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Routines run on the remote host by the quickstart client.

This module has to be importable on both sides: the client mirrors its
directory to the remote root before every call.
"""

import os
import platform

from sendtoremote import remote

HOST = os.getenv("SENDTOREMOTE_EXAMPLE_HOST", "cluster")


def double(x):
    return 2 * x


def describe_host():
    return platform.node(), platform.python_version()


@remote(host=HOST, result_arity=2)
def min_max(values):
    # Runs remotely; the proxy returns (min, max) like a local call.
    return min(values), max(values)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Script-style target: every variable created here is sent back to the caller.
"""

import platform

hostname = platform.node()
grid = [[row * col for col in range(4)] for row in range(4)]
total = sum(sum(row) for row in grid)

print("Prepared a {0}x{0} grid on {1}".format(len(grid), hostname))

#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

from dataclasses import dataclass
from enum import IntEnum


class State(IntEnum):
    """ Plugin states, their values are the process exit codes."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass
class CheckResult:
    """ Outcome of one check run."""

    name: str
    state: State
    message: str
    perfdata: str = ""
    offset: float = None

    def output(self):
        line = f"{self.name} {self.state.name}: {self.message}"
        if self.perfdata:
            line += f"|{self.perfdata}"
        return line

    def __str__(self):
        return self.output()

# Copyright 2019 Joan Puig
# See LICENSE for details


import time
from typing import Dict, Optional

from FITView.state import PerformanceMonitor


class TimerNotStartedError(Exception):
    pass


class TimerPerformanceMonitor(PerformanceMonitor):
    """
    In-process performance monitor keeping the duration of every finished operation in milliseconds
    """

    def __init__(self, clock=time.perf_counter):
        self.clock = clock
        self.started: Dict[str, float] = {}
        self.durations: Dict[str, float] = {}

    def start_timer(self, key: str) -> None:
        self.started[key] = self.clock()
        self.durations.pop(key, None)

    def end_timer(self, key: str) -> float:
        if key not in self.started:
            raise TimerNotStartedError('Timer {} was never started'.format(key))

        duration = (self.clock() - self.started.pop(key)) * 1000.0
        self.durations[key] = duration
        return duration

    def get_operation_time(self, key: str, pop: bool = False) -> Optional[float]:
        """
        Returns the duration of a finished operation, None if it has not finished

        Durations are kept until read with pop=True, so long running hosts should pop them
        """
        if pop:
            return self.durations.pop(key, None)
        return self.durations.get(key)

# Copyright 2019 Joan Puig
# See LICENSE for details


from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


"""
Contracts for the optional collaborators the decode pipeline reports to and persists through.
They are owned by the host application: the pipeline never constructs or destroys them.
Any object with the same methods can be registered, subclassing is not required.
"""


class SettingsStateManager(ABC):
    @abstractmethod
    def get_category(self, name: str) -> Optional[dict]:
        pass

    @abstractmethod
    def update_category(self, name: str, value: dict) -> Any:
        """
        May return an awaitable, which is awaited by the caller and may raise
        """
        pass


class FitFileStateManager(ABC):
    @abstractmethod
    def update_loading_progress(self, percent: int) -> None:
        pass

    @abstractmethod
    def handle_file_loading_error(self, error: Exception, details: Any) -> None:
        pass

    @abstractmethod
    def handle_file_loaded(self, payload: Any) -> None:
        pass


class PerformanceMonitor(ABC):
    @abstractmethod
    def start_timer(self, key: str) -> None:
        pass

    @abstractmethod
    def end_timer(self, key: str) -> Optional[float]:
        pass


class ConfigStore(ABC):
    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    def delete(self, key: str) -> None:
        self.set(key, None)


@dataclass(frozen=True)
class StateManagers:
    settings_state_manager: Optional[SettingsStateManager] = None
    fit_file_state_manager: Optional[FitFileStateManager] = None
    performance_monitor: Optional[PerformanceMonitor] = None

    def describe(self) -> dict:
        return {
            'has_settings': self.settings_state_manager is not None,
            'has_fit_file_state': self.fit_file_state_manager is not None,
            'has_performance_monitor': self.performance_monitor is not None,
        }

# Copyright 2019 Joan Puig
# See LICENSE for details


import asyncio
from typing import Any, Dict, List, Optional

import pytest

from FITView.config import JsonConfigStore
from FITView.decoder import FitParser
from FITView.library import DecodingLibrary, FITDecoder
from FITView.state import ConfigStore, FitFileStateManager, PerformanceMonitor, SettingsStateManager


SAMPLE_MESSAGES = {
    'file_id_mesgs': [{'type': 'activity', 'manufacturer': 'garmin'}],
    'record_mesgs': [
        {'timestamp': 1000, 'heart_rate': 120},
        {'timestamp': 1001, 'heart_rate': 122},
    ],
    'activity_mesgs': [{'num_sessions': 1}],
}


class FakeDecoder(FITDecoder):
    def __init__(self, messages=None, errors=None, integrity=True, read_exception=None):
        self.messages = dict(SAMPLE_MESSAGES) if messages is None else messages
        self.errors = [] if errors is None else errors
        self.integrity = integrity
        self.read_exception = read_exception
        self.read_calls: List[Dict[str, Any]] = []
        self.integrity_checks = 0

    def check_integrity(self) -> bool:
        self.integrity_checks += 1
        return self.integrity

    def read(self, options):
        self.read_calls.append(dict(options))
        if self.read_exception is not None:
            raise self.read_exception
        return self.messages, self.errors


class DiagnosingFakeDecoder(FakeDecoder):
    def __init__(self, integrity_errors, **kwargs):
        super().__init__(**kwargs)
        self.integrity_errors = integrity_errors

    def get_integrity_errors(self):
        return self.integrity_errors


class FakeLibrary(DecodingLibrary):
    def __init__(self, decoder: FITDecoder, load_exception=None, construct_exception=None, async_load=False):
        self.decoder = decoder
        self.load_exception = load_exception
        self.construct_exception = construct_exception
        self.async_load = async_load
        self.loads = 0
        self.streams: List[bytes] = []

    def _load(self):
        self.loads += 1
        if self.load_exception is not None:
            raise self.load_exception

    def load(self):
        if self.async_load:
            async def load_later():
                await asyncio.sleep(0)
                self._load()
            return load_later()
        self._load()

    def stream_from_bytes(self, data: bytes):
        self.streams.append(data)
        return data

    def create_decoder(self, stream) -> FITDecoder:
        if self.construct_exception is not None:
            raise self.construct_exception
        return self.decoder


class RecordingFitFileStateManager(FitFileStateManager):
    def __init__(self, progress_exception=None, error_exception=None, loaded_exception=None):
        self.progress_exception = progress_exception
        self.error_exception = error_exception
        self.loaded_exception = loaded_exception
        self.progress: List[int] = []
        self.errors: List[Any] = []
        self.loaded: List[Any] = []

    def update_loading_progress(self, percent: int) -> None:
        self.progress.append(percent)
        if self.progress_exception is not None:
            raise self.progress_exception

    def handle_file_loading_error(self, error, details) -> None:
        self.errors.append((error, details))
        if self.error_exception is not None:
            raise self.error_exception

    def handle_file_loaded(self, payload) -> None:
        self.loaded.append(payload)
        if self.loaded_exception is not None:
            raise self.loaded_exception


class RecordingPerformanceMonitor(PerformanceMonitor):
    def __init__(self, start_exception=None, end_exception=None):
        self.start_exception = start_exception
        self.end_exception = end_exception
        self.started: List[str] = []
        self.ended: List[str] = []

    def start_timer(self, key: str) -> None:
        self.started.append(key)
        if self.start_exception is not None:
            raise self.start_exception

    def end_timer(self, key: str) -> Optional[float]:
        self.ended.append(key)
        if self.end_exception is not None:
            raise self.end_exception
        return 12.5


class FakeSettingsStateManager(SettingsStateManager):
    def __init__(self, categories=None, get_exception=None, update_exception=None, async_update=False):
        self.categories = {} if categories is None else categories
        self.get_exception = get_exception
        self.update_exception = update_exception
        self.async_update = async_update
        self.updates: List[Any] = []

    def get_category(self, name: str):
        if self.get_exception is not None:
            raise self.get_exception
        return self.categories.get(name)

    def _update(self, name, value):
        self.updates.append((name, value))
        if self.update_exception is not None:
            raise self.update_exception
        self.categories[name] = value

    def update_category(self, name: str, value: dict):
        if self.async_update:
            async def update_later():
                await asyncio.sleep(0)
                self._update(name, value)
            return update_later()
        self._update(name, value)


class MemoryConfigStore(ConfigStore):
    def __init__(self, values=None, get_exception=None, set_exception=None):
        self.values = {} if values is None else values
        self.get_exception = get_exception
        self.set_exception = set_exception
        self.sets: List[Any] = []

    def get(self, key: str, default: Any = None) -> Any:
        if self.get_exception is not None:
            raise self.get_exception
        return self.values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.sets.append((key, value))
        if self.set_exception is not None:
            raise self.set_exception
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


@pytest.fixture
def fake_decoder():
    return FakeDecoder()


@pytest.fixture
def fake_library(fake_decoder):
    return FakeLibrary(fake_decoder)


@pytest.fixture
def memory_store():
    return MemoryConfigStore()


@pytest.fixture
def json_store(tmp_path):
    return JsonConfigStore(config_dir=str(tmp_path))


@pytest.fixture
def fit_state():
    return RecordingFitFileStateManager()


@pytest.fixture
def monitor():
    return RecordingPerformanceMonitor()


@pytest.fixture
def settings():
    return FakeSettingsStateManager()


@pytest.fixture
def parser(memory_store, fake_library, fit_state, monitor):
    fit_parser = FitParser(config_store=memory_store, library=fake_library)
    fit_parser.initialize_state_management(fit_file_state_manager=fit_state, performance_monitor=monitor)
    return fit_parser


@pytest.fixture
def doubles():
    """
    The test double classes, for tests that need differently configured instances
    """
    class Doubles:
        Decoder = FakeDecoder
        DiagnosingDecoder = DiagnosingFakeDecoder
        Library = FakeLibrary
        FitFileState = RecordingFitFileStateManager
        Monitor = RecordingPerformanceMonitor
        Settings = FakeSettingsStateManager
        Store = MemoryConfigStore
    return Doubles

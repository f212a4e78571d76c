# Copyright 2019 Joan Puig
# See LICENSE for details


import asyncio
import functools
import inspect
import logging
import time
import traceback
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from FITView.labels import Messages, apply_unknown_message_labels
from FITView.library import DecodingLibrary, FITDecoder, GarminFitSdkLibrary
from FITView.options import DecoderOptions
from FITView.persistence import DecoderOptionsStore, OptionsUpdateResult
from FITView.state import ConfigStore, FitFileStateManager, PerformanceMonitor, SettingsStateManager, StateManagers


logger = logging.getLogger(__name__)


ERROR_CATEGORY = 'fit_parsing'
GENERIC_FAILURE_MESSAGE = 'Failed to decode file'
NO_INTEGRITY_DETAILS = 'No additional details available'
RECORD_MESSAGE_KEYS = ('record_mesgs', 'records')


class FitDecodeError(Exception):
    message: str
    details: Any
    metadata: Dict[str, str]

    def __init__(self, message: str, details: Any = None, source: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.metadata = {
            'category': ERROR_CATEGORY,
            'source': source if source else 'unknown',
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }

    def stack(self) -> Optional[str]:
        if self.__traceback__ is None:
            return None
        return ''.join(traceback.format_exception(type(self), self, self.__traceback__))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': type(self).__name__,
            'message': self.message,
            'details': self.details,
            'metadata': dict(self.metadata),
            'stack': self.stack(),
        }


@dataclass(frozen=True)
class DecodeFailure:
    error: str
    details: Any = None


@dataclass(frozen=True)
class FileLoadedPayload:
    messages: Messages
    metadata: Dict[str, Any] = field(default_factory=dict)


DecodeResult = Union[Messages, DecodeFailure]


def as_fit_bytes(data: Any) -> Optional[bytes]:
    """
    Returns the raw bytes of a buffer-like input, None if the input is not one
    """
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, np.ndarray) and data.dtype == np.uint8 and data.ndim == 1:
        return data.tobytes()
    return None


def failure_from_exception(error: BaseException) -> DecodeFailure:
    message = str(error)
    if not message:
        return DecodeFailure(GENERIC_FAILURE_MESSAGE, None)
    return DecodeFailure(message, ''.join(traceback.format_exception(type(error), error, error.__traceback__)))


def record_count(messages: Messages) -> int:
    for key in RECORD_MESSAGE_KEYS:
        records = messages.get(key)
        if records is not None:
            return len(records)
    return 0


def new_operation_id() -> str:
    return 'fit_file_decode_{}_{}'.format(time.time_ns(), uuid.uuid4().hex[:8])


class FitParser:
    """
    Decodes FIT file buffers through a decoding library using the persisted decoder options,
    reporting progress, errors and timings to the registered state managers

    One instance is meant to be created at application start and shared by everything that
    decodes files. Concurrent decodes on the same instance are independent
    """
    options_store: DecoderOptionsStore
    library: DecodingLibrary

    def __init__(self, state: Optional[StateManagers] = None, config_store: Optional[ConfigStore] = None, library: Optional[DecodingLibrary] = None):
        self.options_store = DecoderOptionsStore(state, config_store)
        self.library = library if library is not None else GarminFitSdkLibrary()

    @property
    def state(self) -> StateManagers:
        return self.options_store.state

    def initialize_state_management(self, settings_state_manager: Optional[SettingsStateManager] = None, fit_file_state_manager: Optional[FitFileStateManager] = None, performance_monitor: Optional[PerformanceMonitor] = None) -> StateManagers:
        state = StateManagers(settings_state_manager, fit_file_state_manager, performance_monitor)
        self.options_store.state = state
        logger.info('State management initialized: %s', state.describe())
        return state

    def get_persisted_decoder_options(self) -> DecoderOptions:
        return self.options_store.get_persisted_decoder_options()

    def get_current_decoder_options(self) -> DecoderOptions:
        return self.options_store.get_current_decoder_options()

    async def update_decoder_options(self, candidate: Any) -> OptionsUpdateResult:
        return await self.options_store.update_decoder_options(candidate)

    async def reset_decoder_options(self) -> OptionsUpdateResult:
        return await self.options_store.reset_decoder_options()

    # Observability hooks, every call isolated from the decode result

    @staticmethod
    def _notify(state: StateManagers, hook: str, *args) -> None:
        manager = state.fit_file_state_manager
        if manager is None:
            return
        try:
            getattr(manager, hook)(*args)
        except Exception as error:
            logger.warning('Failed to call %s on the fit file state manager: %s', hook, error)

    @staticmethod
    def _progress(state: StateManagers, percent: int) -> None:
        FitParser._notify(state, 'update_loading_progress', percent)

    @staticmethod
    def _start_timer(state: StateManagers, operation_id: str) -> None:
        monitor = state.performance_monitor
        if monitor is None:
            return
        try:
            monitor.start_timer(operation_id)
        except Exception as error:
            logger.warning('Failed to start timer %s: %s', operation_id, error)

    @staticmethod
    def _stop_timer(state: StateManagers, operation_id: str) -> Optional[float]:
        # Not guarded: a failing timer is an error in the host application and propagates
        monitor = state.performance_monitor
        if monitor is None:
            return None
        elapsed = monitor.end_timer(operation_id)
        return elapsed if isinstance(elapsed, (int, float)) else None

    # Pipeline

    @staticmethod
    def _integrity_details(decoder: FITDecoder) -> Any:
        get_integrity_errors = getattr(decoder, 'get_integrity_errors', None)
        if not callable(get_integrity_errors):
            return NO_INTEGRITY_DETAILS
        try:
            return get_integrity_errors()
        except Exception as error:
            logger.warning('Failed to get integrity errors from decoder: %s', error)
            return NO_INTEGRITY_DETAILS

    def _read_options(self, overrides: Any) -> DecoderOptions:
        read_options = dict(self.options_store.get_persisted_decoder_options())
        if overrides is None:
            return read_options
        if not isinstance(overrides, Mapping):
            logger.warning('Ignoring decoder option overrides of type %s', type(overrides).__name__)
            return read_options
        read_options.update(overrides)
        return read_options

    async def _decode(self, state: StateManagers, data: bytes, overrides: Any, library: DecodingLibrary, source: Optional[str]) -> Tuple[Messages, DecoderOptions]:
        loaded = library.load()
        if inspect.isawaitable(loaded):
            await loaded
        stream = library.stream_from_bytes(data)
        decoder = library.create_decoder(stream)
        self._progress(state, 30)

        loop = asyncio.get_running_loop()
        if not await loop.run_in_executor(None, decoder.check_integrity):
            details = self._integrity_details(decoder)
            raise FitDecodeError('FIT file integrity check failed. Details: {}'.format(details), details, source)
        self._progress(state, 50)

        read_options = self._read_options(overrides)
        self._progress(state, 70)

        messages, errors = await loop.run_in_executor(None, functools.partial(decoder.read, read_options))

        if errors:
            raise FitDecodeError('Decoding errors occurred', list(errors), source)

        if not messages:
            raise FitDecodeError('No valid messages decoded, FIT file might be corrupted.', None, source)

        self._progress(state, 90)
        return apply_unknown_message_labels(messages), read_options

    async def decode_fit_file(self, data: Any, options: Optional[Dict[str, Any]] = None, library: Optional[DecodingLibrary] = None, source: Optional[str] = None) -> DecodeResult:
        """
        Decodes the buffer into a dict of message type to list of messages

        Every expected failure (unusable library, integrity check, decoding errors, no messages)
        is returned as a DecodeFailure. A FitDecodeError is raised only for input that is not a
        buffer, and errors raised by the performance monitor when stopping its timer propagate
        """
        state = self.state

        fit_bytes = as_fit_bytes(data)
        if fit_bytes is None:
            error = FitDecodeError('Input is not a valid Buffer or Uint8Array. Received type: {}.'.format(type(data).__name__), None, source)
            logger.error(error.message)
            self._notify(state, 'handle_file_loading_error', error, None)
            raise error

        operation_id = new_operation_id()
        self._start_timer(state, operation_id)
        self._progress(state, 10)

        failure = None
        try:
            messages, read_options = await self._decode(state, fit_bytes, options, library if library is not None else self.library, source)
        except FitDecodeError as error:
            logger.error('%s', error.message)
            failure = DecodeFailure(error.message, error.details)
            self._notify(state, 'handle_file_loading_error', error, error.details)
        except Exception as error:
            logger.error('Failed to decode file: %s', error)
            failure = failure_from_exception(error)
            wrapped = FitDecodeError(failure.error, failure.details, source)
            wrapped.__cause__ = error
            self._notify(state, 'handle_file_loading_error', wrapped, failure.details)

        if failure is not None:
            self._stop_timer(state, operation_id)
            return failure

        self._progress(state, 100)
        elapsed = self._stop_timer(state, operation_id)
        self._notify(state, 'handle_file_loaded', FileLoadedPayload(messages, {
            'record_count': record_count(messages),
            'decoding_options': read_options,
            'processing_time': elapsed,
        }))

        logger.info('FIT file decoded successfully: %d message types', len(messages))
        return messages

# Copyright 2019 Joan Puig
# See LICENSE for details


from typing import Any, Dict, Optional

from FITView.decoder import DecodeFailure, DecodeResult, FitDecodeError, FitParser
from FITView.labels import apply_unknown_message_labels
from FITView.library import DecodingLibrary
from FITView.options import DECODER_OPTIONS_SCHEMA, DecoderOptions, get_default_decoder_options, validate_decoder_options
from FITView.persistence import OptionsUpdateResult
from FITView.state import FitFileStateManager, PerformanceMonitor, SettingsStateManager, StateManagers


"""
Function style access to one process-wide FitParser, for hosts that do not keep their own instance
"""


__all__ = [
    'DECODER_OPTIONS_SCHEMA',
    'DecodeFailure',
    'FitDecodeError',
    'apply_unknown_message_labels',
    'decode_fit_file',
    'default_parser',
    'get_current_decoder_options',
    'get_default_decoder_options',
    'get_persisted_decoder_options',
    'initialize_state_management',
    'reset_decoder_options',
    'update_decoder_options',
    'validate_decoder_options',
]


_default_parser: Optional[FitParser] = None


def default_parser() -> FitParser:
    global _default_parser
    if _default_parser is None:
        _default_parser = FitParser()
    return _default_parser


def initialize_state_management(settings_state_manager: Optional[SettingsStateManager] = None, fit_file_state_manager: Optional[FitFileStateManager] = None, performance_monitor: Optional[PerformanceMonitor] = None) -> StateManagers:
    return default_parser().initialize_state_management(settings_state_manager, fit_file_state_manager, performance_monitor)


async def decode_fit_file(data: Any, options: Optional[Dict[str, Any]] = None, library: Optional[DecodingLibrary] = None, source: Optional[str] = None) -> DecodeResult:
    return await default_parser().decode_fit_file(data, options, library, source)


def get_persisted_decoder_options() -> DecoderOptions:
    return default_parser().get_persisted_decoder_options()


def get_current_decoder_options() -> DecoderOptions:
    return default_parser().get_current_decoder_options()


async def update_decoder_options(candidate: Any) -> OptionsUpdateResult:
    return await default_parser().update_decoder_options(candidate)


async def reset_decoder_options() -> OptionsUpdateResult:
    return await default_parser().reset_decoder_options()

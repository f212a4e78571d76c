# Copyright 2019 Joan Puig
# See LICENSE for details


import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from FITView.config import JsonConfigStore
from FITView.options import DecoderOptions, get_default_decoder_options, validate_decoder_options
from FITView.state import ConfigStore, StateManagers


logger = logging.getLogger(__name__)


SETTINGS_CATEGORY = 'decoder'
CONFIG_KEY = 'decoder_options'


class StorageTier(Enum):
    Primary = 'settings_state_manager'
    Fallback = 'config_store'
    Defaults = 'defaults'


@dataclass(frozen=True)
class ResolvedOptions:
    options: DecoderOptions
    tier: StorageTier
    error: Optional[Exception] = None


@dataclass(frozen=True)
class OptionsUpdateResult:
    success: bool
    options: Optional[DecoderOptions] = None
    errors: Tuple[str, ...] = ()
    tier: Optional[StorageTier] = None
    fallback: bool = False


class DecoderOptionsStore:
    """
    Reads and writes the active decoder options through two tiers: the registered settings
    state manager first, then the local config store. Reads never raise, on total failure
    the schema defaults are returned
    """
    state: StateManagers
    _config_store: Optional[ConfigStore]
    _current: Optional[DecoderOptions]

    def __init__(self, state: Optional[StateManagers] = None, config_store: Optional[ConfigStore] = None):
        self.state = state if state is not None else StateManagers()
        self._config_store = config_store
        self._current = None

    @property
    def config_store(self) -> ConfigStore:
        if self._config_store is None:
            self._config_store = JsonConfigStore()
        return self._config_store

    def _remember(self, options: DecoderOptions) -> DecoderOptions:
        self._current = dict(options)
        return options

    def _read_primary(self) -> Optional[ResolvedOptions]:
        settings = self.state.settings_state_manager
        if settings is None:
            return None

        category = settings.get_category(SETTINGS_CATEGORY)
        if not category or not isinstance(category, Mapping):
            return None

        validation = validate_decoder_options({**get_default_decoder_options(), **category})
        if not validation.is_valid:
            logger.warning('Stored decoder settings are partially invalid: %s', '; '.join(validation.errors))
        return ResolvedOptions(validation.validated_options, StorageTier.Primary)

    def _read_fallback(self, primary_error: Optional[Exception]) -> ResolvedOptions:
        stored = self.config_store.get(CONFIG_KEY, None)
        if stored is None:
            return ResolvedOptions(get_default_decoder_options(), StorageTier.Defaults, primary_error)

        validation = validate_decoder_options(stored)
        if not validation.is_valid:
            logger.warning('Stored decoder options are partially invalid: %s', '; '.join(validation.errors))
        return ResolvedOptions(validation.validated_options, StorageTier.Fallback, primary_error)

    def resolve_decoder_options(self) -> ResolvedOptions:
        primary_error = None
        try:
            resolved = self._read_primary()
            if resolved is not None:
                self._remember(resolved.options)
                return resolved
        except Exception as error:
            logger.warning('Failed to get decoder options from settings state manager, falling back to config store: %s', error)
            primary_error = error

        try:
            resolved = self._read_fallback(primary_error)
        except Exception as error:
            logger.warning('Failed to get decoder options from config store, using defaults: %s', error)
            resolved = ResolvedOptions(get_default_decoder_options(), StorageTier.Defaults, error)

        self._remember(resolved.options)
        return resolved

    def get_persisted_decoder_options(self) -> DecoderOptions:
        return self.resolve_decoder_options().options

    def get_current_decoder_options(self) -> DecoderOptions:
        if self._current is None:
            return dict(self.get_persisted_decoder_options())
        return dict(self._current)

    async def _write_primary(self, options: DecoderOptions) -> bool:
        settings = self.state.settings_state_manager
        if settings is None:
            return False

        result = settings.update_category(SETTINGS_CATEGORY, dict(options))
        if inspect.isawaitable(result):
            await result
        return True

    async def update_decoder_options(self, candidate: Any) -> OptionsUpdateResult:
        validation = validate_decoder_options(candidate)
        if not validation.is_valid:
            logger.error('Invalid decoder options: %s', '; '.join(validation.errors))
            return OptionsUpdateResult(False, errors=validation.errors)

        options = validation.validated_options

        try:
            if await self._write_primary(options):
                logger.info('Decoder options updated in settings state manager')
                return OptionsUpdateResult(True, self._remember(options), tier=StorageTier.Primary)
        except Exception as error:
            logger.warning('Failed to update decoder options in settings state manager, falling back to config store: %s', error)

        try:
            self.config_store.set(CONFIG_KEY, dict(options))
        except Exception as error:
            logger.error('Failed to persist decoder options to config store: %s', error)
            return OptionsUpdateResult(False, errors=(str(error),))

        return OptionsUpdateResult(True, self._remember(options), tier=StorageTier.Fallback, fallback=True)

    async def reset_decoder_options(self) -> OptionsUpdateResult:
        defaults = get_default_decoder_options()

        try:
            await self._write_primary(defaults)
        except Exception as error:
            logger.warning('Failed to reset decoder options in settings state manager: %s', error)

        try:
            store = self.config_store
            if hasattr(store, 'delete'):
                store.delete(CONFIG_KEY)
            else:
                store.set(CONFIG_KEY, None)
        except Exception as error:
            logger.warning('Failed to reset decoder options in config store: %s', error)

        return OptionsUpdateResult(True, self._remember(defaults), tier=StorageTier.Defaults)

# Copyright 2019 Joan Puig
# See LICENSE for details


import importlib
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from FITView.options import DecoderOptions


logger = logging.getLogger(__name__)


class DecodingLibraryNotFoundError(Exception):
    pass


class FITDecoder(ABC):
    """
    A decoder bound to one stream of FIT bytes

    Implementations may also provide get_integrity_errors() returning diagnostic details
    for a failed integrity check
    """

    @abstractmethod
    def check_integrity(self) -> bool:
        pass

    @abstractmethod
    def read(self, options: DecoderOptions) -> Tuple[Dict[str, List[Any]], List[Any]]:
        """
        Decodes the whole stream and returns the messages keyed by message type and the list of errors
        """
        pass


class DecodingLibrary(ABC):
    def load(self) -> Any:
        """
        Makes the library ready for use, may return an awaitable
        """
        pass

    @abstractmethod
    def stream_from_bytes(self, data: bytes) -> Any:
        pass

    @abstractmethod
    def create_decoder(self, stream: Any) -> FITDecoder:
        pass


class GarminFitSdkDecoder(FITDecoder):
    def __init__(self, sdk_decoder, stream):
        self.sdk_decoder = sdk_decoder
        self.stream = stream

    def check_integrity(self) -> bool:
        return bool(self.sdk_decoder.check_integrity())

    def _reset_stream(self) -> None:
        reset = getattr(self.stream, 'reset', None)
        if callable(reset):
            reset()

    def read(self, options: DecoderOptions) -> Tuple[Dict[str, List[Any]], List[Any]]:
        accepted = inspect.signature(self.sdk_decoder.read).parameters
        kwargs = {name: value for name, value in options.items() if name in accepted}

        self._reset_stream()
        messages, errors = self.sdk_decoder.read(**kwargs)

        # Older SDK releases always decode unknown messages, keyed by their message number
        if not options.get('include_unknown_data', True) and 'include_unknown_data' not in accepted:
            messages = {key: value for key, value in messages.items() if not str(key).isdigit()}

        return messages, list(errors or [])


class GarminFitSdkLibrary(DecodingLibrary):
    """
    Default decoding library, backed by the Garmin FIT Python SDK (garmin-fit-sdk)
    """
    MODULE_NAME = 'garmin_fit_sdk'

    sdk: Optional[Any]

    def __init__(self):
        self.sdk = None

    def load(self) -> Any:
        if self.sdk is None:
            try:
                self.sdk = importlib.import_module(GarminFitSdkLibrary.MODULE_NAME)
            except ModuleNotFoundError as error:
                raise DecodingLibraryNotFoundError('Unable to load {}, make sure garmin-fit-sdk is installed'.format(GarminFitSdkLibrary.MODULE_NAME)) from error
            logger.debug('Loaded decoding library %s', GarminFitSdkLibrary.MODULE_NAME)
        return self.sdk

    def stream_from_bytes(self, data: bytes) -> Any:
        return self.load().Stream.from_byte_array(bytearray(data))

    def create_decoder(self, stream: Any) -> FITDecoder:
        return GarminFitSdkDecoder(self.load().Decoder(stream), stream)

# Copyright 2019 Joan Puig
# See LICENSE for details


import importlib

import pytest

from FITView.library import DecodingLibraryNotFoundError, GarminFitSdkDecoder, GarminFitSdkLibrary
from FITView.options import get_default_decoder_options


class SdkStream:
    def __init__(self):
        self.resets = 0

    def reset(self):
        self.resets += 1


class SdkDecoder:
    def __init__(self, messages):
        self.messages = messages
        self.kwargs = None

    def check_integrity(self):
        return 1

    def read(self, apply_scale_and_offset=True, convert_datetimes_to_dates=True, convert_types_to_strings=True,
             enable_crc_check=True, expand_sub_fields=True, expand_components=True, merge_heart_rates=True, mesg_listener=None):
        self.kwargs = dict(apply_scale_and_offset=apply_scale_and_offset, expand_sub_fields=expand_sub_fields, merge_heart_rates=merge_heart_rates)
        return self.messages, None


def test_read_passes_only_supported_options():
    stream = SdkStream()
    sdk_decoder = SdkDecoder({'record_mesgs': [{}]})
    decoder = GarminFitSdkDecoder(sdk_decoder, stream)
    options = get_default_decoder_options()
    options['expand_sub_fields'] = False

    messages, errors = decoder.read(options)

    assert messages == {'record_mesgs': [{}]}
    assert errors == []
    assert sdk_decoder.kwargs['expand_sub_fields'] is False
    assert stream.resets == 1
    assert decoder.check_integrity() is True


def test_unknown_messages_dropped_when_excluded():
    decoder = GarminFitSdkDecoder(SdkDecoder({'record_mesgs': [{}], '104': [{0: 1}]}), SdkStream())
    options = get_default_decoder_options()

    messages, _ = decoder.read(options)
    assert '104' in messages

    options['include_unknown_data'] = False
    messages, _ = decoder.read(options)
    assert messages == {'record_mesgs': [{}]}


def test_missing_sdk_raises_library_error(monkeypatch):
    def missing(name):
        raise ModuleNotFoundError(name)

    monkeypatch.setattr(importlib, 'import_module', missing)

    with pytest.raises(DecodingLibraryNotFoundError):
        GarminFitSdkLibrary().load()


def test_sdk_is_loaded_once(monkeypatch):
    imported = []

    class Sdk:
        pass

    def import_module(name):
        imported.append(name)
        return Sdk

    monkeypatch.setattr(importlib, 'import_module', import_module)
    library = GarminFitSdkLibrary()

    assert library.load() is Sdk
    assert library.load() is Sdk
    assert imported == ['garmin_fit_sdk']

"""Tests for configuration loading and saving."""

import json

import pytest

from automacro.config import (
    DEFAULT_BUTTON_USAGES,
    DEFAULT_PRODUCT_ID,
    DEFAULT_VENDOR_ID,
    Color,
    KeyAction,
    KeyEvent,
    load_config,
    parse_config,
    save_config,
)
from automacro.errors import ConfigurationError


def test_missing_file_creates_default(temp_dir):
    path = temp_dir / 'nested' / 'config.yaml'
    config = load_config(path)

    assert path.exists()
    assert sorted(config.default_layout.macros) == [1, 2, 3]
    assert config.application_layouts == {}
    assert config.default_layout.get(1).key_actions == (
        KeyAction('ctrl', KeyEvent.DOWN),
        KeyAction('c', KeyEvent.DOWN),
        KeyAction('ctrl', KeyEvent.UP),
        KeyAction('c', KeyEvent.UP),
    )
    assert config.default_layout.get(3).color == Color()


def test_default_device_identity(temp_dir):
    config = load_config(temp_dir / 'config.yaml')
    assert config.device.vendor_id == DEFAULT_VENDOR_ID == 12972
    assert config.device.product_id == DEFAULT_PRODUCT_ID == 19
    assert config.device.button_usages == DEFAULT_BUTTON_USAGES


def test_json_config_loads(temp_dir):
    path = temp_dir / 'MacroConfig.json'
    path.write_text(json.dumps({
        'DefaultLayout': {
            'Macros': {
                '1': {
                    'Color': {'Red': 1, 'Green': 2, 'Blue': 3},
                    'KeyActions': [
                        {'Keycode': 'CONTROL', 'Event': 'KEYDOWN'},
                        {'Keycode': 'CONTROL', 'Event': 'KEYUP'},
                    ],
                },
            },
        },
        'ApplicationLayouts': {
            'code.exe': {'2': {'KeyActions': [{'Keycode': 116, 'Event': 'key-down'}]}},
        },
    }))

    config = load_config(path)

    macro = config.default_layout.get(1)
    assert macro.color == Color(1, 2, 3)
    assert [a.event for a in macro.key_actions] == [KeyEvent.DOWN, KeyEvent.UP]
    editor = config.application_layouts['code.exe']
    assert editor.get(2).key_actions == (KeyAction(116, KeyEvent.DOWN),)
    assert editor.get(2).color == Color()


def test_device_section():
    config = parse_config({
        'DefaultLayout': {},
        'Device': {'VendorId': '0x1234', 'ProductId': 5, 'RawUsages': ['0xFF600061']},
    })
    assert config.device.vendor_id == 0x1234
    assert config.device.product_id == 5
    assert config.device.raw_usages == (0xFF600061,)
    assert config.device.button_usages == DEFAULT_BUTTON_USAGES


def test_save_and_reload(temp_dir, config):
    path = temp_dir / 'saved.yaml'
    save_config(config, path)

    reloaded = load_config(path)
    assert reloaded.default_layout == config.default_layout
    assert reloaded.application_layouts == config.application_layouts
    assert reloaded.device == config.device


@pytest.mark.parametrize('data, path', [
    ({}, '<root>'),
    ({'DefaultLayout': []}, 'DefaultLayout'),
    ({'DefaultLayout': {'x': {}}}, 'DefaultLayout'),
    ({'DefaultLayout': {0: {}}}, 'DefaultLayout'),
    ({'DefaultLayout': {128: {}}}, 'DefaultLayout'),
    ({'DefaultLayout': {1: {'Color': {'Red': 256}}}}, 'DefaultLayout.1.Color.Red'),
    ({'DefaultLayout': {1: {'Color': {'Green': -1}}}}, 'DefaultLayout.1.Color.Green'),
    ({'DefaultLayout': {1: {'KeyActions': 'ctrl'}}}, 'DefaultLayout.1.KeyActions'),
    ({'DefaultLayout': {1: {'KeyActions': [{'Event': 'down'}]}}}, 'DefaultLayout.1.KeyActions.0.Keycode'),
    ({'DefaultLayout': {1: {'KeyActions': [{'Keycode': 'a', 'Event': 'tap'}]}}},
     'DefaultLayout.1.KeyActions.0.Event'),
    ({'DefaultLayout': {}, 'ApplicationLayouts': {'a.exe': {2: {'Color': 'red'}}}},
     'ApplicationLayouts.a.exe.2.Color'),
    ({'DefaultLayout': {}, 'Device': {'VendorId': 'nope'}}, 'Device'),
    ({'DefaultLayout': {}, 'Device': {'ButtonUsages': []}}, 'Device.ButtonUsages'),
])
def test_malformed_config_names_the_path(data, path):
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config(data)
    assert excinfo.value.path == path


def test_unreadable_yaml(temp_dir):
    path = temp_dir / 'config.yaml'
    path.write_text('DefaultLayout: [unclosed')

    with pytest.raises(ConfigurationError):
        load_config(path)

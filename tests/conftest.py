"""Pytest fixtures for tests."""

import os
import sys
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

# pynput's X backend needs a display at import time
if sys.platform.startswith('linux') and not os.environ.get('DISPLAY'):
    os.environ.setdefault('PYNPUT_BACKEND', 'dummy')

from automacro.config import Color, Config, Layout

from fakes import make_macro


@pytest.fixture
def temp_dir():
    """Create a temporary directory that gets cleaned up."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def copy_macro():
    return make_macro('ctrl', 'c')


@pytest.fixture
def config(copy_macro):
    """Default layout with three buttons, an editor layout, and two apps whose layouts equal the default."""
    default = Layout({
        1: copy_macro,
        2: make_macro('ctrl', 'v'),
        3: make_macro('cmd', 'shift', 's', color=Color(255, 0, 0)),
    })
    editor = Layout({
        1: make_macro('f5', color=Color(0, 0, 255)),
    })
    same_as_default = Layout(dict(default.macros))
    return Config(
        default_layout=default,
        application_layouts={
            'code.exe': editor,
            'notepad.exe': same_as_default,
            'wordpad.exe': Layout(dict(default.macros)),
        },
    )

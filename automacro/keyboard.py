"""
Keyboard event injection.

Uses pynput to replay a macro's key actions on the host, in order and
without delays.
"""

import logging
from typing import Dict, Sequence, Union

from pynput import keyboard
from pynput.keyboard import Key, KeyCode

from .config import Config, KeyAction, KeyEvent
from .errors import ConfigurationError

log = logging.getLogger(__name__)

# Names used by other tools for keys pynput spells differently
KEY_ALIASES: Dict[str, Key] = {
    'control': Key.ctrl,
    'lcontrol': Key.ctrl_l,
    'rcontrol': Key.ctrl_r,
    'menu': Key.alt,
    'win': Key.cmd,
    'lwin': Key.cmd_l,
    'rwin': Key.cmd_r,
    'super': Key.cmd,
    'return': Key.enter,
    'escape': Key.esc,
    'back': Key.backspace,
    'prior': Key.page_up,
    'next': Key.page_down,
}


def resolve_key(keycode: Union[str, int]) -> Union[Key, KeyCode]:
    """Map a configured keycode to a pynput key."""
    if isinstance(keycode, int):
        return KeyCode.from_vk(keycode)

    name = keycode.strip()
    if len(name) == 1:
        return KeyCode.from_char(name)

    lowered = name.lower()
    if lowered.startswith('key_') and len(lowered) == 5:
        # KEY_C style names
        return KeyCode.from_char(lowered[4])
    if lowered in KEY_ALIASES:
        return KEY_ALIASES[lowered]
    try:
        return Key[lowered]
    except KeyError:
        raise ValueError(f"Unknown key name {keycode!r}") from None


class KeyInjector:
    """Replays key actions through the OS input queue."""

    def __init__(self, controller=None):
        self._controller = controller or keyboard.Controller()

    def inject(self, actions: Sequence[KeyAction]):
        """Press and release keys in order. Blocks until all actions are sent."""
        for action in actions:
            key = resolve_key(action.keycode)
            if action.event is KeyEvent.DOWN:
                self._controller.press(key)
            else:
                self._controller.release(key)
        log.debug(f"Injected {len(actions)} key actions")


def validate_keycodes(config: Config):
    """Check that every keycode in the configuration names a known key."""
    layouts = [('DefaultLayout', config.default_layout)]
    layouts += [(f"ApplicationLayouts.{app}", layout)
                for app, layout in config.application_layouts.items()]

    for path, layout in layouts:
        for button, macro in layout.items():
            for i, action in enumerate(macro.key_actions):
                try:
                    resolve_key(action.keycode)
                except ValueError as e:
                    raise ConfigurationError(str(e), f"{path}.{button}.KeyActions.{i}.Keycode") from e

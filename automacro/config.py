"""
Configuration loading and management.

The configuration maps each focused application to a layout of button
macros. It is read once at startup and never changes while the service runs.
"""

import os
import yaml
from enum import Enum
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from .errors import ConfigurationError


# Framework 16 RGB macropad running QMK
DEFAULT_VENDOR_ID = 0x32AC
DEFAULT_PRODUCT_ID = 0x0013
# Consumer Control collection containing Programmable Buttons
DEFAULT_BUTTON_USAGES = (0x000C0001, 0x000C0003)
# QMK raw HID (usage page 0xFF60, usage 0x61)
DEFAULT_RAW_USAGES = (0xFF600061,)


class KeyEvent(Enum):
    DOWN = 'down'
    UP = 'up'


EVENT_ALIASES = {
    'down': KeyEvent.DOWN,
    'key-down': KeyEvent.DOWN,
    'keydown': KeyEvent.DOWN,
    'press': KeyEvent.DOWN,
    'up': KeyEvent.UP,
    'key-up': KeyEvent.UP,
    'keyup': KeyEvent.UP,
    'release': KeyEvent.UP,
}


@dataclass(frozen=True)
class Color:
    """LED color of a button; all channels zero means off."""
    red: int = 0
    green: int = 0
    blue: int = 0


@dataclass(frozen=True)
class KeyAction:
    """A single key press or release. Keycode is a key name or a virtual-key code."""
    keycode: Union[str, int]
    event: KeyEvent


@dataclass(frozen=True)
class Macro:
    """A recorded key sequence and the color of the button that triggers it."""
    color: Color = field(default_factory=Color)
    key_actions: Tuple[KeyAction, ...] = ()


@dataclass
class Layout:
    """Button id -> macro. Two layouts are equal when their mappings are equal."""
    macros: Dict[int, Macro] = field(default_factory=dict)

    def get(self, button: int) -> Optional[Macro]:
        return self.macros.get(button)

    def items(self) -> Iterator[Tuple[int, Macro]]:
        return iter(self.macros.items())

    def __len__(self) -> int:
        return len(self.macros)


@dataclass
class DeviceConfig:
    """Identity of the macro pad and the usage chains of its two interfaces."""
    vendor_id: int = DEFAULT_VENDOR_ID
    product_id: int = DEFAULT_PRODUCT_ID
    button_usages: Tuple[int, ...] = DEFAULT_BUTTON_USAGES
    raw_usages: Tuple[int, ...] = DEFAULT_RAW_USAGES


@dataclass
class Config:
    """Main application configuration."""
    default_layout: Layout = field(default_factory=Layout)
    application_layouts: Dict[str, Layout] = field(default_factory=dict)
    device: DeviceConfig = field(default_factory=DeviceConfig)

    def layout_for(self, application: Optional[str]) -> Layout:
        """Layout for an application, falling back to the default layout."""
        if application is None:
            return self.default_layout
        return self.application_layouts.get(application, self.default_layout)


def get_config_path() -> Path:
    """Get the configuration file path."""
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', '~'))
    elif os.name == 'posix':
        if 'darwin' in os.uname().sysname.lower():  # macOS
            base = Path.home() / 'Library' / 'Application Support'
        else:  # Linux
            base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
    else:
        base = Path.home()

    return base / 'automacro' / 'config.yaml'


def parse_hex(value) -> int:
    """Parse a hex string or int to int."""
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse {value} as hex")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith('0x') else int(value)
    raise ValueError(f"Cannot parse {value} as hex")


def _require_mapping(data: Any, path: str) -> Dict[Any, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"expected a mapping, got {type(data).__name__}", path)
    return data


def _parse_channel(data: Dict[str, Any], name: str, path: str) -> int:
    value = data.get(name, 0)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
        raise ConfigurationError(f"color channel must be an integer 0..255, got {value!r}", f"{path}.{name}")
    return value


def _parse_color(data: Any, path: str) -> Color:
    data = _require_mapping(data, path)
    return Color(
        red=_parse_channel(data, 'Red', path),
        green=_parse_channel(data, 'Green', path),
        blue=_parse_channel(data, 'Blue', path),
    )


def _parse_key_action(data: Any, path: str) -> KeyAction:
    data = _require_mapping(data, path)

    keycode = data.get('Keycode')
    if isinstance(keycode, bool) or not isinstance(keycode, (str, int)) or keycode == '':
        raise ConfigurationError(f"missing or invalid keycode {keycode!r}", f"{path}.Keycode")

    event_name = str(data.get('Event', '')).strip().lower()
    event = EVENT_ALIASES.get(event_name)
    if event is None:
        raise ConfigurationError(f"unknown key event {data.get('Event')!r}", f"{path}.Event")

    return KeyAction(keycode=keycode, event=event)


def _parse_macro(data: Any, path: str) -> Macro:
    data = _require_mapping(data, path)

    actions = data.get('KeyActions') or []
    if not isinstance(actions, list):
        raise ConfigurationError("expected a list of key actions", f"{path}.KeyActions")

    return Macro(
        color=_parse_color(data.get('Color'), f"{path}.Color"),
        key_actions=tuple(
            _parse_key_action(action, f"{path}.KeyActions.{i}")
            for i, action in enumerate(actions)
        ),
    )


def _parse_layout(data: Any, path: str) -> Layout:
    data = _require_mapping(data, path)

    # Layouts saved by older versions wrap the buttons in a Macros key
    if set(data.keys()) == {'Macros'}:
        path = f"{path}.Macros"
        data = _require_mapping(data['Macros'], path)

    layout = Layout()
    for key, macro_data in data.items():
        try:
            button = int(key)
        except (TypeError, ValueError):
            raise ConfigurationError(f"button id must be an integer, got {key!r}", path) from None
        if not 1 <= button <= 127:
            raise ConfigurationError(f"button id must be between 1 and 127, got {button}", path)
        layout.macros[button] = _parse_macro(macro_data, f"{path}.{key}")

    return layout


def _parse_usages(data: Any, default: Tuple[int, ...], path: str) -> Tuple[int, ...]:
    if data is None:
        return default
    if not isinstance(data, list) or not data:
        raise ConfigurationError("expected a non-empty list of usages", path)
    try:
        return tuple(parse_hex(usage) for usage in data)
    except ValueError as e:
        raise ConfigurationError(str(e), path) from e


def _parse_device(data: Any) -> DeviceConfig:
    data = _require_mapping(data, 'Device')
    try:
        vendor_id = parse_hex(data.get('VendorId', DEFAULT_VENDOR_ID))
        product_id = parse_hex(data.get('ProductId', DEFAULT_PRODUCT_ID))
    except ValueError as e:
        raise ConfigurationError(str(e), 'Device') from e

    return DeviceConfig(
        vendor_id=vendor_id,
        product_id=product_id,
        button_usages=_parse_usages(data.get('ButtonUsages'), DEFAULT_BUTTON_USAGES, 'Device.ButtonUsages'),
        raw_usages=_parse_usages(data.get('RawUsages'), DEFAULT_RAW_USAGES, 'Device.RawUsages'),
    )


def parse_config(data: Any) -> Config:
    """Build a Config from already-decoded YAML/JSON data."""
    data = _require_mapping(data, '<root>')

    if 'DefaultLayout' not in data:
        raise ConfigurationError("missing DefaultLayout", '<root>')

    config = Config(
        default_layout=_parse_layout(data['DefaultLayout'], 'DefaultLayout'),
        device=_parse_device(data.get('Device')),
    )

    apps = _require_mapping(data.get('ApplicationLayouts'), 'ApplicationLayouts')
    for application, layout_data in apps.items():
        config.application_layouts[str(application)] = _parse_layout(
            layout_data, f"ApplicationLayouts.{application}"
        )

    return config


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from a YAML (or JSON) file, creating a default one if missing."""
    if path is None:
        path = get_config_path()

    if not path.exists():
        return create_default_config(path)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot read configuration: {e}", str(path)) from e

    return parse_config(data)


DEFAULT_CONFIG_YAML = """# automacro configuration
#
# Layouts map a button number (1 = first button) to a macro. A macro has an
# LED color and an ordered list of key actions that are replayed when the
# button is pressed. Keycode is a key name (ctrl, shift, cmd, f13, ...), a
# single character, or an integer virtual-key code. Event is down or up.

DefaultLayout:
  1:  # copy
    Color: {Red: 0, Green: 0, Blue: 0}
    KeyActions:
      - {Keycode: ctrl, Event: down}
      - {Keycode: c, Event: down}
      - {Keycode: ctrl, Event: up}
      - {Keycode: c, Event: up}
  2:  # paste
    Color: {Red: 0, Green: 0, Blue: 0}
    KeyActions:
      - {Keycode: ctrl, Event: down}
      - {Keycode: v, Event: down}
      - {Keycode: ctrl, Event: up}
      - {Keycode: v, Event: up}
  3:  # screenshot
    Color: {Red: 0, Green: 0, Blue: 0}
    KeyActions:
      - {Keycode: cmd, Event: down}
      - {Keycode: shift, Event: down}
      - {Keycode: s, Event: down}
      - {Keycode: cmd, Event: up}
      - {Keycode: shift, Event: up}
      - {Keycode: s, Event: up}

# Per-application layouts, keyed by the executable name of the focused
# window (for example code.exe or firefox)
ApplicationLayouts: {}
"""


def create_default_config(path: Path) -> Config:
    """Create and save a default configuration."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(DEFAULT_CONFIG_YAML)

    return load_config(path)


def _dump_layout(layout: Layout) -> Dict[int, Any]:
    return {
        button: {
            'Color': {'Red': macro.color.red, 'Green': macro.color.green, 'Blue': macro.color.blue},
            'KeyActions': [
                {'Keycode': action.keycode, 'Event': action.event.value}
                for action in macro.key_actions
            ],
        }
        for button, macro in layout.items()
    }


def dump_config(config: Config) -> Dict[str, Any]:
    """Convert a Config back to plain data in the file schema."""
    device = config.device
    return {
        'DefaultLayout': _dump_layout(config.default_layout),
        'ApplicationLayouts': {
            application: _dump_layout(layout)
            for application, layout in config.application_layouts.items()
        },
        'Device': {
            'VendorId': hex(device.vendor_id),
            'ProductId': hex(device.product_id),
            'ButtonUsages': [hex(usage) for usage in device.button_usages],
            'RawUsages': [hex(usage) for usage in device.raw_usages],
        },
    }


def save_config(config: Config, path: Optional[Path] = None):
    """Save configuration to YAML file."""
    if path is None:
        path = get_config_path()

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(dump_config(config), f, default_flow_style=False, sort_keys=False)

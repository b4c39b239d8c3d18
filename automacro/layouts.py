"""
Application-aware layout selection.

The engine remembers which application had focus on the previous tick and
which layout is on the device. A new layout is only reported when it
differs by value from the active one, so switching between applications
that share a layout does not rewrite the LEDs.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .config import Config, Layout

log = logging.getLogger(__name__)


@dataclass
class EngineState:
    """Focused application and active layout of one connection epoch."""
    application: Optional[str]
    layout: Layout

    @classmethod
    def initial(cls, config: Config) -> 'EngineState':
        """State at engine start: no application, default layout."""
        return cls(application=None, layout=config.default_layout)


def resolve_layout(application: Optional[str], state: EngineState,
                   config: Config) -> Tuple[EngineState, bool]:
    """
    Resolve the layout for the focused application.

    Returns the new engine state and whether the active layout changed.
    The given state is never mutated.
    """
    if application == state.application:
        return state, False

    log.debug(f"Focused application: {state.application!r} -> {application!r}")
    candidate = config.layout_for(application)

    if candidate == state.layout:
        return EngineState(application=application, layout=state.layout), False

    log.info(f"Layout changed for {application or 'default'} ({len(candidate)} buttons)")
    return EngineState(application=application, layout=candidate), True

from dataclasses import dataclass, field
from typing import Any

# -------------------------
# Discrete player / network signals consumed by the state machine
# -------------------------
@dataclass(frozen=True)
class FileLoaded:
    pass

@dataclass(frozen=True)
class PlaybackRestart:
    pass

@dataclass(frozen=True)
class Seek:
    pass

@dataclass(frozen=True)
class PropertyChange:
    name: str
    value: Any

@dataclass(frozen=True)
class ClientMessage:
    args: tuple = field(default_factory=tuple)

@dataclass(frozen=True)
class Shutdown:
    pass

@dataclass(frozen=True)
class ConnectivityChanged:
    online: bool

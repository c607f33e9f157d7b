"""
Host-facing facade over the Forge interpreter.

ForgeVM compiles and executes source files against one interpreter and
remembers each file's source, so a host (editor, game loop, CLI) can
hot-reload a file by name.

Usage:
    vm = ForgeVM()
    vm.load_file("scripts/doors.forge")
    vm.on("sound:hit", lambda data: play_sound(data["name"]))
    vm.emit("init")

    # Game loop
    vm.tick(dt)
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .ast import Program
from .config import RuntimeConfig
from .lexer import tokenize
from .parser import parse
from .runtime import Interpreter

logger = logging.getLogger(__name__)


def compile_program(source: str, filename: Optional[str] = None) -> Program:
    """Tokenize and parse source into a Program."""
    tokens = tokenize(source, filename or "<input>")
    return parse(tokens, filename=filename, source=source)


def run(source: str, filename: Optional[str] = None,
        config: Optional[RuntimeConfig] = None) -> Interpreter:
    """Create a fresh interpreter and execute source in it."""
    program = compile_program(source, filename)
    interpreter = Interpreter(config)
    interpreter.execute(program, filename)
    return interpreter


class ForgeVM:
    """
    High-level interface for running Forge programs.

    Compile errors and runtime errors propagate unchanged (ForgeError
    subclasses); the VM does not catch or log them.
    """

    def __init__(self, config: Optional[RuntimeConfig] = None, output=None):
        self._interpreter = Interpreter(config, output)
        self.sources: Dict[str, str] = {}

    @property
    def runtime(self) -> Interpreter:
        """The underlying interpreter."""
        return self._interpreter

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, source: str, filename: str = "<input>") -> None:
        """Compile and execute source once against the globals."""
        program = compile_program(source, filename)
        self.sources[filename] = source
        self._interpreter.execute(program, filename)

    def load_all(self, sources: Mapping[str, str]) -> None:
        """Load several files in order, keyed by filename."""
        for filename, source in sources.items():
            self.load(source, filename)

    def reload(self, source: str, filename: str) -> None:
        """
        Hot-reload a previously loaded file.

        Definitions are replaced; instance fields changed at runtime keep
        their values. A file that was never loaded is simply loaded.
        """
        if filename not in self.sources:
            logger.debug("reload of unknown file %s; loading instead", filename)
            self.load(source, filename)
            return

        program = compile_program(source, filename)
        self.sources[filename] = source
        self._interpreter.reload(program, filename)

    def load_file(self, path: Union[str, Path]) -> None:
        """Load a file from disk; its path is the file id."""
        path = Path(path)
        self.load(path.read_text(encoding="utf-8"), str(path))

    def reload_file(self, path: Union[str, Path]) -> None:
        """Re-read a file from disk and hot-reload it."""
        path = Path(path)
        self.reload(path.read_text(encoding="utf-8"), str(path))

    def has_file(self, filename: str) -> bool:
        return filename in self.sources

    def get_source(self, filename: str) -> Optional[str]:
        return self.sources.get(filename)

    # =========================================================================
    # Events and Globals
    # =========================================================================

    def emit(self, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Emit an event (processed immediately unless already draining)."""
        self._interpreter.emit(event, data)

    def on(self, event: str, listener: Callable[[Dict[str, Any]], Any]) -> Callable[[], None]:
        """Subscribe a host listener; "*" receives every event."""
        return self._interpreter.on_event(event, listener)

    def tick(self, dt: float) -> None:
        """Advance one frame."""
        self._interpreter.tick(dt)

    def get(self, name: str) -> Any:
        return self._interpreter.get(name)

    def set(self, name: str, value: Any) -> None:
        self._interpreter.set(name, value)

    def globals(self) -> Dict[str, Any]:
        return self._interpreter.globals()

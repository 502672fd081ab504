# game_review/utils/system_utils.py
"""
Locates the UCI engine executable on the host system.
"""
import os
import shutil
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

ENGINE_PATH_ENV_VAR = 'STOCKFISH_PATH'
ENGINE_BINARY_NAMES: Sequence[str] = ('stockfish', 'stockfish_x86-64-avx2', 'stockfish-ubuntu-x86-64')
ENGINE_INSTALL_DIRS: Sequence[Path] = (
    Path('/usr/games'),
    Path('/usr/local/bin'),
    Path('/opt/homebrew/bin'),
)


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def _candidates(binary_names: Iterable[str], install_dirs: Iterable[Path]) -> Iterator[Path]:
    binary_names = list(binary_names)
    for name in binary_names:
        if found := shutil.which(name):
            yield Path(found)
    for directory in install_dirs:
        for name in binary_names:
            yield directory / name


def find_stockfish_executable(
    provided_path: Optional[str] = None,
    binary_names: Sequence[str] = ENGINE_BINARY_NAMES,
    install_dirs: Sequence[Path] = ENGINE_INSTALL_DIRS,
) -> Path:
    """
    Resolves the engine executable, raising FileNotFoundError if unsuccessful.

    An explicitly configured path (the argument, then the `STOCKFISH_PATH`
    environment variable) must point at an executable; it is never silently
    replaced by one found elsewhere. Without one, each binary name is looked
    up on `PATH` and then in the usual install directories.

    Raises:
        FileNotFoundError: If no usable executable can be found.
    """
    explicit = provided_path or os.environ.get(ENGINE_PATH_ENV_VAR)
    if explicit:
        path = Path(explicit).expanduser()
        if not _is_executable(path):
            raise FileNotFoundError(f"Configured engine path is not an executable file: {path}")
        return path.resolve()

    for path in _candidates(binary_names, install_dirs):
        if _is_executable(path):
            return path

    raise FileNotFoundError(
        f"No engine executable found (tried {', '.join(binary_names)}). Install Stockfish, "
        f"set the {ENGINE_PATH_ENV_VAR} environment variable, or use the --engine-path argument."
    )

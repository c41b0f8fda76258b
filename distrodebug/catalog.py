"""Utility catalog: the names symlinked to the injected multi-call binary."""

from pathlib import Path

from distrodebug.errors import ConfigError

DEFAULT_CATALOG_PATH = Path(__file__).parent / "utilities.txt"


def parse_catalog(text: str) -> tuple[str, ...]:
    """Parse catalog text: one name per line, ``#`` comments, duplicates dropped."""
    names: dict[str, None] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        name = line.strip()
        if not name or name.startswith("#"):
            continue
        if "/" in name or name in (".", ".."):
            raise ConfigError(f"Invalid utility name '{name}' on line {lineno}.")
        names[name] = None
    return tuple(names)


def load_catalog(path: str | Path | None = None) -> tuple[str, ...]:
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
    try:
        text = catalog_path.read_text()
    except OSError as e:
        raise ConfigError(f"Cannot read utility catalog '{catalog_path}': {e}") from e

    names = parse_catalog(text)
    if not names:
        raise ConfigError(f"Utility catalog '{catalog_path}' is empty.")
    return names

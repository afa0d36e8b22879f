"""Version information for the Keno catalog proxy."""
import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION_NAME = "keno-catalog-proxy"


def get_version():
    """Get version from the installed distribution, else pyproject.toml."""
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        pass

    # Running from a source checkout: src/ -> project root
    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    try:
        with open(pyproject_path, "rb") as f:
            return tomllib.load(f)["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "0.1.0"


__version__ = get_version()

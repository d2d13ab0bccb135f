"""Top-level package for the Photobook Toolkit.

Provides subpackages:
- photobook_toolkit.core – immutable models, errors, serialization
- photobook_toolkit.layout – geometry engine and composition store
- photobook_toolkit.persistence – durable blob storage for compositions
- photobook_toolkit.upload – bounded, retrying asset upload orchestration
- photobook_toolkit.build – PDF build submission and completion polling
- photobook_toolkit.api – HTTP adapter for the photobook backend
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            content = pyproject.read_text()
            for line in content.splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.4.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    # Fallback to importlib.metadata for installed package
    from importlib.metadata import PackageNotFoundError, version as pkg_version
    try:
        return pkg_version("photobook_toolkit")
    except PackageNotFoundError:
        return "0.0.0"

__version__ = _get_version()
__copyright__ = "Copyright 2026 The Photobook Toolkit Authors Licensed under the Polyform Noncommercial License 1.0.0"
__all__: list[str] = ["__version__"]

"""
Module: config

Purpose:
    Top-level configuration for the photobook toolkit: where compositions
    and the upload ledger are stored, how to reach the backend, and the
    upload and build policies. Immutable, validated on construction, and
    persisted as JSON.

Key Classes:
    - PhotobookConfig: Main configuration

Dependencies:
    - json (std)
    - pathlib (std)

Used By:
    - order.place_order
    - Applications embedding the toolkit
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .build.config import BuildConfig
from .upload.config import UploadConfig

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_DIR = Path.home() / ".photobook_toolkit"
DEFAULT_API_BASE_URL = "http://localhost:8000"
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class PhotobookConfig:
    """
    Toolkit configuration (immutable).

    Attributes:
        storage_dir: Directory for the blob store (composition + ledger)
        api_base_url: Backend root URL
        api_key: Key sent as ``Authorization: ApiKey <key>``
        request_timeout: Per-request HTTP timeout in seconds
        upload: Upload pool and retry policy
        build: Build polling policy

    Example:
        >>> config = PhotobookConfig.load(Path("photobook.json"))
        >>> config.upload.max_workers
        3
    """

    storage_dir: Path = DEFAULT_STORAGE_DIR
    api_base_url: str = DEFAULT_API_BASE_URL
    api_key: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    upload: UploadConfig = field(default_factory=UploadConfig)
    build: BuildConfig = field(default_factory=BuildConfig)

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if not self.api_base_url.startswith(("http://", "https://")):
            raise ValueError(f"api_base_url must be an http(s) URL: {self.api_base_url}")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive: {self.request_timeout}")
        # Normalize path
        if not isinstance(self.storage_dir, Path):
            object.__setattr__(self, "storage_dir", Path(self.storage_dir))

    def to_dict(self) -> dict:
        return {
            "storage_dir": str(self.storage_dir),
            "api_base_url": self.api_base_url,
            "api_key": self.api_key,
            "request_timeout": self.request_timeout,
            "upload": self.upload.to_dict(),
            "build": self.build.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> PhotobookConfig:
        """
        Build from a dict; absent keys take their defaults.

        Raises:
            ValueError / TypeError: On invalid values
        """
        kwargs = {
            key: data[key]
            for key in ("api_base_url", "api_key", "request_timeout")
            if key in data
        }
        if "storage_dir" in data:
            kwargs["storage_dir"] = Path(data["storage_dir"]).expanduser()
        if "upload" in data:
            kwargs["upload"] = UploadConfig(**data["upload"])
        if "build" in data:
            kwargs["build"] = BuildConfig(**data["build"])
        return cls(**kwargs)

    @classmethod
    def load(cls, path: Path) -> PhotobookConfig:
        """
        Load configuration from a JSON file.

        A missing file gives the defaults. A corrupt or invalid file is
        logged and also gives the defaults.
        """
        if not path.exists():
            logger.debug(f"No config at {path}, using defaults")
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("top level is not an object")
            return cls.from_dict(data)
        except json.JSONDecodeError as e:
            logger.warning(f"Config file {path} is corrupted, using defaults: {e}")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Config file {path} could not be used, using defaults: {e}")
        return cls()

    def save(self, path: Path) -> None:
        """Write configuration as JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

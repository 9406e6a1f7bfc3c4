"""Project configuration.

KestrelConfig is a frozen dataclass. Every path the scanner, build and
server touch is derived from it.
"""

from dataclasses import dataclass
from pathlib import Path

from kestrel.errors import ConfigurationError

_LOG_LEVELS = frozenset({"debug", "info", "warning", "error", "critical"})


@dataclass(frozen=True, slots=True)
class KestrelConfig:
    """Project configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = KestrelConfig(project_root="site", out_dir=".build")

    Relative directories are resolved against ``project_root``.
    """

    # Layout
    project_root: str | Path = "."
    app_dir: str | Path = "app"
    out_dir: str | Path = ".kestrel"
    component_dirs: tuple[str | Path, ...] = ("components",)  # Scanned for "use client" modules

    # Wire protocol
    rsc_param: str = "_rsc"  # Query marker: ?_rsc=1 returns the chunk stream

    # Document
    title: str = "kestrel"
    lang: str = "en"
    entry_script: str = "/client.js"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Logging
    log_level: str = "info"

    @property
    def root_path(self) -> Path:
        """Absolute project root."""
        return Path(self.project_root).resolve()

    @property
    def app_path(self) -> Path:
        """Absolute path of the route directory."""
        return self._resolve(self.app_dir)

    @property
    def out_path(self) -> Path:
        """Absolute path of the build output directory."""
        return self._resolve(self.out_dir)

    @property
    def static_path(self) -> Path:
        """Directory holding the ``pages/`` and ``flight/`` artifact trees."""
        return self.out_path / "static"

    @property
    def manifest_path(self) -> Path:
        return self.out_path / "manifest.json"

    @property
    def metadata_path(self) -> Path:
        """Directory holding per-route revalidation metadata."""
        return self.out_path / "cache" / "metadata"

    @property
    def component_paths(self) -> tuple[Path, ...]:
        return tuple(self._resolve(d) for d in self.component_dirs)

    def _resolve(self, value: str | Path) -> Path:
        path = Path(value)
        if not path.is_absolute():
            path = self.root_path / path
        return path

    def validate(self) -> None:
        """Reject configurations that cannot work.

        Raises:
            ConfigurationError: If a field holds an unusable value.
        """
        if not self.rsc_param or not self.rsc_param.isidentifier():
            msg = f"rsc_param must be a non-empty identifier, got {self.rsc_param!r}"
            raise ConfigurationError(msg)
        if self.log_level.lower() not in _LOG_LEVELS:
            msg = f"log_level must be one of {sorted(_LOG_LEVELS)}, got {self.log_level!r}"
            raise ConfigurationError(msg)
        if not 0 < self.port < 65536:
            msg = f"port out of range: {self.port}"
            raise ConfigurationError(msg)
        if self.out_path == self.app_path:
            msg = "out_dir must differ from app_dir"
            raise ConfigurationError(msg)

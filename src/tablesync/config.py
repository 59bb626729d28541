"""Configuration management for tablesync projects."""

import os
from pathlib import Path
from typing import Optional, Dict, Any, Literal
import toml
from pydantic import BaseModel, Field, ConfigDict

CONFIG_DIR_NAME = ".tablesync"
CONFIG_FILE_NAME = "config.toml"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ProjectSettings(BaseModel):
    """Settings stored in .tablesync/config.toml."""

    model_config = ConfigDict(
        extra="allow", validate_assignment=True
    )  # Allow additional fields for extensibility

    audit_enabled: bool = Field(default=True, description="Whether mutations are audited")
    audit_mask: str = Field(
        default="****", description="Replacement for sensitive values in the audit trail"
    )
    default_page_size: int = Field(default=10, gt=0, description="Rows per page for new views")
    audit_db: Optional[str] = Field(
        default=None, description="SQLite audit log path, relative to the project directory"
    )
    no_measures_policy: Literal["raise", "empty"] = Field(
        default="raise",
        description="What the measure aggregation does when no measure has data yet",
    )


class Config:
    """Manages tablesync project configuration."""

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            project_dir: Path to project directory. If None, uses TABLESYNC_PROJECT_DIR env var or current directory.
        """
        if project_dir is None:
            env_dir = os.environ.get("TABLESYNC_PROJECT_DIR")
            if env_dir:
                project_dir = Path(env_dir)

        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self.config_dir = self.project_dir / CONFIG_DIR_NAME
        self.config_path = self.config_dir / CONFIG_FILE_NAME
        self._settings: Optional[ProjectSettings] = None

    @property
    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def load(self) -> ProjectSettings:
        """Load configuration from disk, with environment variable overrides."""
        if not self.exists:
            raise FileNotFoundError(f"Config file not found at {self.config_path}")

        with open(self.config_path, "r") as f:
            data = toml.load(f)

        self._apply_env_overrides(data)
        self._settings = ProjectSettings(**data)
        return self._settings

    def load_or_default(self) -> ProjectSettings:
        """Load configuration, falling back to defaults when no file exists."""
        if self.exists:
            return self.load()
        data: Dict[str, Any] = {}
        self._apply_env_overrides(data)
        self._settings = ProjectSettings(**data)
        return self._settings

    def _apply_env_overrides(self, data: Dict[str, Any]) -> None:
        """Apply environment variable overrides to configuration data."""
        if (env_audit := os.environ.get("TABLESYNC_AUDIT_ENABLED")) is not None:
            data["audit_enabled"] = env_audit.strip().lower() in _TRUE_VALUES

        if env_page_size := os.environ.get("TABLESYNC_PAGE_SIZE"):
            data["default_page_size"] = int(env_page_size)

        if env_audit_db := os.environ.get("TABLESYNC_AUDIT_DB"):
            data["audit_db"] = env_audit_db

    def save(self, settings: Optional[ProjectSettings] = None) -> None:
        """Save configuration to disk.

        Args:
            settings: Configuration to save. If None, saves current config.
        """
        if settings:
            self._settings = settings

        if not self._settings:
            raise ValueError("No configuration to save")

        self.config_dir.mkdir(parents=True, exist_ok=True)

        data = self._settings.model_dump(exclude_none=True)
        with open(self.config_path, "w") as f:
            toml.dump(data, f)

    def init_project(self) -> ProjectSettings:
        """Create a project with default configuration.

        Raises:
            FileExistsError: If the project is already initialized
        """
        if self.exists:
            raise FileExistsError(f"Project already initialized at {self.config_dir}")

        settings = ProjectSettings(audit_db="audit.db")
        self.save(settings)
        return settings

    def audit_db_path(self, settings: Optional[ProjectSettings] = None) -> Optional[Path]:
        """Absolute path of the audit database, if one is configured."""
        settings = settings or self._settings or self.load_or_default()
        if not settings.audit_db:
            return None
        path = Path(settings.audit_db)
        return path if path.is_absolute() else self.config_dir / path

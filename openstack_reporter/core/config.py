"""Configuration management for OpenStack Reporter."""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from openstack_reporter.core.exceptions import ConfigurationError


# Environment variable -> Config field
ENV_MAPPING = {
    "OS_AUTH_URL": "auth_url",
    "OS_USERNAME": "username",
    "OS_PASSWORD": "password",
    "OS_USER_DOMAIN_NAME": "user_domain_name",
    "OS_PROJECT_NAME": "project_name",
    "OS_PROJECT_ID": "project_id",
    "OS_PROJECT_DOMAIN_NAME": "project_domain_name",
    "OS_REGION_NAME": "region_name",
    "OS_INSECURE": "insecure",
    "REPORTER_DATA_DIR": "data_dir",
    "REPORTER_BACKUP_MAX_AGE_DAYS": "backup_max_age_days",
}

# Fields that are never written to the config file
SECRET_FIELDS = {"password"}


class Config(BaseModel):
    """Configuration model for OpenStack Reporter."""

    auth_url: str = Field(..., description="Keystone v3 endpoint")
    username: str = Field(..., description="User name for password authentication")
    password: str = Field(..., repr=False, description="User password")
    user_domain_name: str = Field(default="Default", description="Domain of the user")
    project_name: Optional[str] = Field(default=None, description="Restrict collection to this project")
    project_id: Optional[str] = Field(default=None, description="ID of the current project")
    project_domain_name: Optional[str] = Field(default=None, description="Domain of the project")
    region_name: Optional[str] = Field(default=None, description="Region used for endpoint selection")
    insecure: bool = Field(default=False, description="Disable TLS certificate verification")
    data_dir: Path = Field(default=Path("data"), description="Directory holding report snapshots")
    backup_max_age_days: int = Field(default=7, ge=1, description="Backups older than this are pruned")
    cli_timeout: int = Field(default=60, ge=1, description="Timeout for the openstack CLI fallback, seconds")

    @field_validator('auth_url')
    @classmethod
    def validate_auth_url(cls, v: str) -> str:
        """Validate identity endpoint format."""
        if not re.match(r'^https?://[^\s/]+', v):
            raise ValueError(
                f"Invalid auth URL: {v}. "
                "Expected format: https://keystone.example.com:5000/v3"
            )
        return v.rstrip('/')

    @field_validator('project_name', 'project_id', 'project_domain_name', 'region_name', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Treat blank optional values as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @property
    def single_project(self) -> bool:
        """True when collection is restricted to the configured project."""
        return self.project_name is not None


class ConfigManager:
    """Builds configuration from the local config file and OS_* environment."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Optional custom configuration directory path.
                       Defaults to ~/.openstack-reporter/
        """
        if config_dir is None:
            config_dir = Path.home() / ".openstack-reporter"

        self.config_dir = config_dir
        self.config_file = config_dir / "config.json"

        # Ensure config directory exists
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load_config(self, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> Config:
        """Load configuration from file and environment.

        Values from the environment take precedence over the file, and
        explicit overrides (e.g. CLI options) take precedence over both.

        Args:
            environ: Environment mapping. Defaults to os.environ.
            **overrides: Field values that win over every other source.
                         None values are ignored.

        Returns:
            Validated Config object.

        Raises:
            ConfigurationError: If the file is corrupted or the result is invalid.
        """
        if environ is None:
            environ = os.environ

        values = self._read_file()

        for env_name, field_name in ENV_MAPPING.items():
            raw = environ.get(env_name)
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()

        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return Config(**values)
        except ValidationError as e:
            missing = [
                '.'.join(str(p) for p in err['loc'])
                for err in e.errors()
                if err['type'] == 'missing'
            ]
            if missing:
                env_names = [env for env, field in ENV_MAPPING.items() if field in missing]
                raise ConfigurationError(
                    f"Missing required settings: {', '.join(env_names or missing)}",
                    details=str(e)
                )
            raise ConfigurationError(f"Invalid configuration: {e}", details=str(e))

    def save_config(self, config: Config) -> None:
        """Save non-secret configuration to file.

        Args:
            config: Configuration object to save.

        Raises:
            OSError: If unable to write configuration file.
        """
        temp_file = self.config_file.with_suffix('.tmp')
        try:
            config_dict = config.model_dump(mode='json', exclude=SECRET_FIELDS)

            # Write atomically by writing to temp file first
            with open(temp_file, 'w') as f:
                json.dump(config_dict, f, indent=2)

            temp_file.replace(self.config_file)

        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise OSError(f"Failed to save configuration: {e}")

    def get_config_path(self) -> Path:
        """Get the configuration file path."""
        return self.config_file

    def _read_file(self) -> Dict[str, Any]:
        """Read the config file, returning an empty dict when absent."""
        if not self.config_file.exists():
            return {}

        try:
            with open(self.config_file, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigurationError(f"Invalid configuration file: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError("Invalid configuration file: expected a JSON object")

        for secret in SECRET_FIELDS:
            data.pop(secret, None)

        return data

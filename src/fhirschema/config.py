"""Configuration management for fhirschema."""

import configparser
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fhirschema.control.constants import (
    DEFAULT_ADMIN_SCHEMA,
    DEFAULT_DATA_SCHEMA,
    DEFAULT_SESSION_VARIABLE,
    DEFAULT_TABLESPACE,
    FHIR_USER_GRANT_GROUP,
)
from fhirschema.exceptions import ConfigError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def load_profile(profile: str = "DEFAULT", path: Optional[Path] = None) -> dict[str, str]:
    """Load settings from an ini file (~/.fhirschema.cfg by default).

    Args:
        profile: Section name to load (default: "DEFAULT")
        path: Override for the file location

    Returns:
        Dict of the keys found in the section, empty if the file is missing

    Raises:
        ConfigError: If the file exists but the profile doesn't
    """
    cfg_path = path or Path.home() / ".fhirschema.cfg"
    if not cfg_path.exists():
        return {}

    config = configparser.ConfigParser()
    config.read(cfg_path)

    if profile != "DEFAULT" and profile not in config:
        available = config.sections() or ["DEFAULT"]
        raise ConfigError(
            f"Profile '{profile}' not found in {cfg_path}. "
            f"Available profiles: {', '.join(available)}"
        )

    return {k: v.strip() for k, v in config[profile].items()}


def _parse_bool(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


@dataclass
class Config:
    """Configuration for one schema generation run."""

    schema_name: str = DEFAULT_DATA_SCHEMA
    admin_schema_name: str = DEFAULT_ADMIN_SCHEMA
    tablespace: str = DEFAULT_TABLESPACE
    session_variable: str = DEFAULT_SESSION_VARIABLE
    grant_group: str = FHIR_USER_GRANT_GROUP
    resource_types_file: Optional[str] = None
    serialize_type_creation: bool = True
    per_resource_procedures: bool = False

    @classmethod
    def from_env(
        cls,
        *,
        schema_name: Optional[str] = None,
        admin_schema_name: Optional[str] = None,
        tablespace: Optional[str] = None,
        session_variable: Optional[str] = None,
        grant_group: Optional[str] = None,
        resource_types_file: Optional[str] = None,
        serialize_type_creation: Optional[bool] = None,
        per_resource_procedures: Optional[bool] = None,
        profile: Optional[str] = None,
        profile_path: Optional[Path] = None,
    ) -> "Config":
        """Load configuration from the profile file, env vars, with CLI overrides.

        Priority (highest to lowest):
        1. Explicit parameters (CLI args)
        2. Environment variables
        3. ~/.fhirschema.cfg profile
        4. Defaults
        """
        profile_name = profile or os.environ.get("FHIRSCHEMA_PROFILE", "DEFAULT")
        file_cfg = load_profile(profile_name, profile_path)

        def resolve(explicit, env_key, cfg_key, default):
            if explicit is not None:
                return explicit
            env_val = os.environ.get(env_key)
            if env_val is not None:
                return env_val
            if cfg_key in file_cfg:
                return file_cfg[cfg_key]
            return default

        def resolve_bool(explicit, env_key, cfg_key, default):
            value = resolve(explicit, env_key, cfg_key, default)
            if isinstance(value, bool):
                return value
            return _parse_bool(value, env_key)

        return cls(
            schema_name=resolve(
                schema_name, "FHIRSCHEMA_SCHEMA", "schema", DEFAULT_DATA_SCHEMA
            ),
            admin_schema_name=resolve(
                admin_schema_name,
                "FHIRSCHEMA_ADMIN_SCHEMA",
                "admin_schema",
                DEFAULT_ADMIN_SCHEMA,
            ),
            tablespace=resolve(
                tablespace, "FHIRSCHEMA_TABLESPACE", "tablespace", DEFAULT_TABLESPACE
            ),
            session_variable=resolve(
                session_variable,
                "FHIRSCHEMA_SESSION_VARIABLE",
                "session_variable",
                DEFAULT_SESSION_VARIABLE,
            ),
            grant_group=resolve(
                grant_group, "FHIRSCHEMA_GRANT_GROUP", "grant_group", FHIR_USER_GRANT_GROUP
            ),
            resource_types_file=resolve(
                resource_types_file,
                "FHIRSCHEMA_RESOURCE_TYPES_FILE",
                "resource_types_file",
                None,
            ),
            serialize_type_creation=resolve_bool(
                serialize_type_creation,
                "FHIRSCHEMA_SERIALIZE_TYPES",
                "serialize_type_creation",
                True,
            ),
            per_resource_procedures=resolve_bool(
                per_resource_procedures,
                "FHIRSCHEMA_PER_RESOURCE_PROCEDURES",
                "per_resource_procedures",
                False,
            ),
        )

    def validate(self) -> None:
        """Check every name is a usable SQL identifier.

        Raises:
            ConfigError: Listing every invalid setting.
        """
        invalid = []
        for field_name in (
            "schema_name",
            "admin_schema_name",
            "tablespace",
            "session_variable",
            "grant_group",
        ):
            value = getattr(self, field_name)
            if not value or not _IDENTIFIER_RE.match(value):
                invalid.append(f"{field_name}={value!r}")
        if self.schema_name and self.schema_name == self.admin_schema_name:
            invalid.append("schema_name must differ from admin_schema_name")

        if invalid:
            raise ConfigError(
                "Invalid configuration:\n  - " + "\n  - ".join(invalid)
            )

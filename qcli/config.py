"""qcli project configuration.

Typed configuration for the scaffolding CLI, persisted as
``quillysoft-cli.json``.  All settings are Pydantic v2 models so they can be
validated at construction time and serialised to/from camelCase JSON without
boiler-plate.

Loading is deliberately fail-soft: a missing, unreadable or malformed file
never reaches the caller as an exception.  ``Config.load`` logs a warning and
hands back a default configuration whose root path is auto-detected.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    model_validator,
)
from pydantic.alias_generators import to_camel

from qcli.utils import find_repository_root, find_upwards, load_json, save_json

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "quillysoft-cli.json"
SAMPLE_FILE_NAME = "quillysoft-cli.sample.json"


class ConfigKeyError(KeyError):
    """Raised when a dotted settings key does not name a configuration field."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Unknown configuration key: {self.key}"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class EntityType(str, Enum):
    """Base class flavour used for generated entities."""
    SIMPLE = "Simple"
    AUDITED = "Audited"
    FULLY_AUDITED = "FullyAudited"
    BASE_ENTITY = "BaseEntity"


class ProjectType(str, Enum):
    """Known project layouts.  ``Config.project_type`` is not restricted to these."""
    CLEAN_ARCHITECTURE = "CleanArchitecture"
    ONION_ARCHITECTURE = "OnionArchitecture"
    MINIMAL_API = "MinimalApi"
    MICROSERVICE = "Microservice"


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _match_keys(cls, data: Any) -> Any:
        return _canonical_keys(cls, data)


class ProjectInfo(_Section):
    """Free-form project metadata."""

    name: str = Field(default="")
    namespace: str = Field(default="")
    description: str = Field(default="")
    author: str = Field(default="")
    version: str = Field(default="1.0.0")


class ProjectPaths(_Section):
    """Filesystem layout of the target solution.

    ``root_path`` is absolute; the other paths are relative to it unless they
    are absolute themselves.
    """

    root_path: str = Field(default="")
    api_path: str = Field(default="src/Apps/Api")
    application_path: str = Field(default="src/Core/Application")
    domain_path: str = Field(default="src/Core/Domain")
    persistence_path: str = Field(default="src/Infra/Persistence")
    application_tests_path: str = Field(default="tests/Application/ApplicationTests")
    integration_tests_path: str = Field(default="tests/Infra/InfraTests/Controllers")
    controllers_path: str = Field(default="src/Apps/Api/Controllers")

    def get_full_path(self, relative_path: str) -> Path:
        """Join *relative_path* onto ``root_path`` (absolute paths pass through)."""
        return Path(self.root_path) / relative_path


class CodeGenerationSettings(_Section):
    """Toggles consumed by the code-generation commands."""

    default_entity_type: EntityType = Field(default=EntityType.AUDITED)
    generate_events: bool = Field(default=True)
    generate_mapping_profiles: bool = Field(default=True)
    generate_permissions: bool = Field(default=True)
    generate_tests: bool = Field(default=True)


class TemplateSettings(_Section):
    """Where templates come from and how names are remapped."""

    default_template: str = Field(default="clean-architecture")
    custom_templates_path: str = Field(default="templates")
    enable_custom_templates: bool = Field(default=False)
    template_overrides: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Top-level configuration
# ---------------------------------------------------------------------------

# Accepted JSON keys per top-level field.  The first entry is the name written
# on save; the rest are read-only spellings (python name, legacy key).
_TOP_LEVEL_KEYS: dict[str, tuple[str, ...]] = {
    "schema_version": ("schemaVersion", "schema_version", "version"),
    "project_info": ("projectInfo", "project_info", "project"),
    "project_paths": ("projectPaths", "project_paths", "paths"),
    "code_generation_settings": (
        "codeGenerationSettings", "code_generation_settings", "codeGeneration",
    ),
    "template_settings": ("templateSettings", "template_settings", "templates"),
    "project_type": ("projectType", "project_type"),
    "extensions": ("extensions",),
}

# Short keys understood by ``get_value`` / ``set_value``.
_SHORT_KEYS: dict[str, str] = {
    "rootpath": "projectPaths.rootPath",
    "entitytype": "codeGenerationSettings.defaultEntityType",
    "projecttype": "projectType",
}


def _keys(field_name: str) -> dict[str, Any]:
    choices = _TOP_LEVEL_KEYS[field_name]
    return {
        "validation_alias": AliasChoices(*choices),
        "serialization_alias": choices[0],
    }


class Config(BaseModel):
    """Resolved qcli configuration.

    Instances are created once per CLI invocation by ``Config.load`` and then
    passed explicitly to whatever builds render models.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    schema_version: str = Field(default="1.0", **_keys("schema_version"))
    project_info: ProjectInfo = Field(default_factory=ProjectInfo, **_keys("project_info"))
    project_paths: ProjectPaths = Field(default_factory=ProjectPaths, **_keys("project_paths"))
    code_generation_settings: CodeGenerationSettings = Field(
        default_factory=CodeGenerationSettings, **_keys("code_generation_settings")
    )
    template_settings: TemplateSettings = Field(
        default_factory=TemplateSettings, **_keys("template_settings")
    )
    project_type: str = Field(
        default=ProjectType.CLEAN_ARCHITECTURE.value, **_keys("project_type")
    )
    extensions: dict[str, JsonValue] = Field(default_factory=dict, **_keys("extensions"))

    @model_validator(mode="before")
    @classmethod
    def _collect_unknown_keys(cls, data: Any) -> Any:
        """Move unrecognised top-level keys into ``extensions``.

        Key matching is case-insensitive, so ``ProjectInfo`` reads as
        ``projectInfo``.
        """
        if not isinstance(data, dict):
            return data
        data = _canonical_keys(cls, data)
        unknown = {key: value for key, value in data.items() if key not in cls.model_fields}
        if not unknown:
            return data

        extensions = data.get("extensions", {})
        if not isinstance(extensions, dict):
            return data

        merged = dict(extensions)
        for key, value in unknown.items():
            merged.setdefault(key, value)
        known = {key: value for key, value in data.items() if key in cls.model_fields}
        known["extensions"] = merged
        return known

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @staticmethod
    def locate(explicit_path: str | Path | None = None) -> Path | None:
        """Find the configuration file ``load`` would read, if any.

        An existing *explicit_path* wins; otherwise the current directory and
        each of its ancestors are searched for ``quillysoft-cli.json``.
        """
        if explicit_path and Path(explicit_path).is_file():
            return Path(explicit_path)
        return find_upwards(CONFIG_FILE_NAME)

    @classmethod
    def load(cls, explicit_path: str | Path | None = None) -> "Config":
        """Resolve the configuration for this invocation.

        Never raises.  When no file is found, or the one found cannot be read
        or parsed, a default configuration with an auto-detected root path is
        returned instead.
        """
        config_file = cls.locate(explicit_path)
        if config_file is None:
            logger.debug("No %s found; using default configuration", CONFIG_FILE_NAME)
            return cls.create_default()

        try:
            config = cls.load_file(config_file)
        except Exception as exc:
            logger.warning(
                "Ignoring unreadable configuration %s (%s); using defaults",
                config_file,
                exc,
            )
            return cls.create_default()

        logger.debug("Loaded configuration from %s", config_file)
        return config

    @classmethod
    def load_file(cls, path: str | Path) -> "Config":
        """Load and validate one configuration file.  Errors propagate."""
        return cls.model_validate(load_json(path))

    @staticmethod
    def auto_detect_paths(start: str | Path | None = None) -> ProjectPaths:
        """Return default paths rooted at the detected repository root.

        Falls back to the current working directory when no repository or
        solution marker is found.
        """
        root = find_repository_root(start)
        if root is None:
            root = Path.cwd()
        return ProjectPaths(root_path=str(root))

    @classmethod
    def create_default(cls) -> "Config":
        """Hard-coded defaults with an auto-detected ``root_path``."""
        return cls(project_paths=cls.auto_detect_paths())

    @classmethod
    def create_sample(cls) -> "Config":
        """A fully populated example configuration (not persisted)."""
        return cls(
            project_info=ProjectInfo(
                name="MyProject",
                namespace="MyProject",
                description="A sample Clean Architecture project",
                author="Developer Name",
                version="1.0.0",
            ),
            project_type=ProjectType.CLEAN_ARCHITECTURE.value,
            project_paths=ProjectPaths(
                root_path="/projects/MyProject",
                api_path="src/Apps/Api",
                application_path="src/Core/Application",
                domain_path="src/Core/Domain",
                persistence_path="src/Infra/Persistence",
                application_tests_path="tests/Application/ApplicationTests",
                integration_tests_path="tests/Infra/InfraTests/Controllers",
                controllers_path="src/Apps/Api/Controllers",
            ),
            code_generation_settings=CodeGenerationSettings(
                default_entity_type=EntityType.AUDITED,
                generate_events=True,
                generate_mapping_profiles=True,
                generate_permissions=True,
                generate_tests=True,
            ),
            template_settings=TemplateSettings(
                default_template="clean-architecture",
                custom_templates_path="templates",
                enable_custom_templates=False,
            ),
        )

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_json_dict(self) -> dict[str, Any]:
        """camelCase JSON-ready mapping with ``None`` fields omitted.

        ``extensions`` is copied as-is so nulls nested inside it survive.
        """
        data = self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude={"extensions"},
        )
        data["extensions"] = self.extensions
        return data

    def save(self, path: str | Path | None = None) -> Path:
        """Write the configuration as JSON, overwriting any existing file.

        Args:
            path: Destination file.  Defaults to ``./quillysoft-cli.json``.

        Returns:
            The path that was written.
        """
        target = Path(path) if path else Path.cwd() / CONFIG_FILE_NAME
        return save_json(self.to_json_dict(), target)

    @classmethod
    def sample_json(cls) -> dict[str, Any]:
        """Serialised form of ``create_sample()``."""
        return cls.create_sample().to_json_dict()

    # ------------------------------------------------------------------
    # Keyed access
    # ------------------------------------------------------------------

    def get_value(self, key: str) -> Any:
        """Read a setting by dotted camelCase key (e.g. ``projectPaths.apiPath``).

        Models are returned as camelCase dicts and enums as their values.

        Raises:
            ConfigKeyError: If *key* does not name a setting.
        """
        parent, name = self._resolve(key)
        if isinstance(parent, dict):
            if name not in parent:
                raise ConfigKeyError(key)
            value = parent[name]
        else:
            value = getattr(parent, name)

        if isinstance(value, BaseModel):
            return value.model_dump(mode="json", by_alias=True)
        if isinstance(value, Enum):
            return value.value
        return value

    def set_value(self, key: str, value: Any) -> None:
        """Assign a setting by dotted camelCase key.

        String input is coerced to the field type by pydantic (``"false"``
        becomes ``False``, ``"Simple"`` becomes ``EntityType.SIMPLE``).

        Raises:
            ConfigKeyError: If *key* does not name a setting.
            pydantic.ValidationError: If *value* does not fit the field.
        """
        parent, name = self._resolve(key)
        if isinstance(parent, dict):
            parent[name] = value
        else:
            setattr(parent, name, value)

    def _resolve(self, key: str) -> tuple[Any, str]:
        """Walk *key* down to ``(container, attribute-or-dict-key)``."""
        path = _SHORT_KEYS.get(key.lower(), key)
        parts = [part for part in path.split(".") if part]
        if not parts:
            raise ConfigKeyError(key)

        target: Any = self
        for index, part in enumerate(parts):
            is_last = index == len(parts) - 1
            if isinstance(target, BaseModel):
                name = _field_name(type(target), part)
                if name is None:
                    raise ConfigKeyError(key)
            elif isinstance(target, dict) and is_last:
                name = part
            elif isinstance(target, dict) and part in target:
                name = part
            else:
                raise ConfigKeyError(key)

            if is_last:
                return target, name
            target = target[name] if isinstance(target, dict) else getattr(target, name)

        raise ConfigKeyError(key)


def _field_name(model: type[BaseModel], key: str) -> str | None:
    """Map a camelCase, snake_case or legacy key to a field name (case-insensitive)."""
    wanted = key.lower()
    for name in model.model_fields:
        spellings = _TOP_LEVEL_KEYS.get(name, ()) if model is Config else ()
        candidates = {name, to_camel(name), *spellings}
        if wanted in {candidate.lower() for candidate in candidates}:
            return name
    return None


def _canonical_keys(model: type[BaseModel], data: Any) -> Any:
    """Rename keys that match a field of *model* (ignoring case) to its name.

    Unmatched keys are passed through untouched.  When two spellings of one
    field are present, the later one wins.
    """
    if not isinstance(data, dict):
        return data
    result: dict[Any, Any] = {}
    for key, value in data.items():
        name = _field_name(model, key) if isinstance(key, str) else None
        result[name or key] = value
    return result

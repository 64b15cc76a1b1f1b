"""Configuration management for docsearch."""

import importlib
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from .access_control import SearchAccessController
from .errors import ConfigurationError
from .request import PageRequest

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python < 3.11

logger = logging.getLogger(__name__)

CONFIG_FILE_INIT_PARAM = "configFile"
FACTORY_CLASS_INIT_PARAM = "searchConfigFactoryClass"


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent

        # Stop if we reach filesystem root
        if parent_dir == current_dir:
            return start_dir

        current_dir = parent_dir


def _load_toml(config_file: Path) -> dict:
    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except OSError as exc:
        raise ConfigurationError(f"Reading search configuration failed: {config_file}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Search configuration is not valid TOML: {config_file}") from exc


def resolve_search_config_path(cli_config_path: Optional[str] = None) -> Path:
    """Resolve the search configuration file with the following precedence:

    1. Explicit path (CLI --config option or the configFile init parameter)
    2. DOCSEARCH_CONFIG environment variable
    3. .docsearch/config.toml in the repository containing the CWD

    Raises:
        ConfigurationError: If no configuration file can be found
    """
    if cli_config_path:
        path = Path(cli_config_path).expanduser().resolve()
        if not path.exists():
            raise ConfigurationError(f"Specified search configuration does not exist: {path}")
        return path

    env_path = os.environ.get("DOCSEARCH_CONFIG")
    if env_path:
        path = Path(env_path).expanduser().resolve()
        if not path.exists():
            raise ConfigurationError(f"DOCSEARCH_CONFIG path does not exist: {path}")
        return path

    repo_root = _find_repo_root(Path.cwd())
    repo_config = repo_root / ".docsearch" / "config.toml"
    if repo_config.exists():
        return repo_config

    raise ConfigurationError(
        "Search configuration not found. Searched for:\n"
        "  - --config option / configFile init parameter\n"
        "  - DOCSEARCH_CONFIG environment variable\n"
        f"  - .docsearch/config.toml in repo at {repo_root}"
    )


class IndexSection(BaseModel):
    """One [[index]] table of the configuration file."""

    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1)
    directory: str = Field(min_length=1)
    parent: Optional[str] = Field(default=None)
    is_parent: bool = Field(default=False)
    access_controller: Optional[str] = Field(default=None)
    access_controller_params: dict[str, Any] = Field(default_factory=dict)
    use_file_to_http_bridge: bool = Field(default=True)
    open_in_new_window: bool = Field(default=False)
    rewrite_rules: list[tuple[str, str]] = Field(default_factory=list)


class SearchConfigFile(BaseModel):
    """Top level of the configuration file."""

    model_config = {"extra": "forbid"}

    default_indexes: Optional[list[str]] = Field(default=None)
    index: list[IndexSection] = Field(default_factory=list)


@dataclass(frozen=True)
class IndexConfig:
    name: str
    directory: Path
    parent_name: Optional[str] = None
    is_parent: bool = False
    access_controller: Optional[SearchAccessController] = field(default=None, compare=False)
    # (internal prefix, external prefix), first match wins
    rewrite_rules: tuple[tuple[str, str], ...] = ()
    use_file_to_http_bridge: bool = True
    open_in_new_window: bool = False

    def has_parent(self) -> bool:
        return self.parent_name is not None


class SearchConfig:
    """The loaded search configuration. Never modified after construction."""

    def __init__(self, index_configs: list[IndexConfig], default_index_names: Optional[list[str]] = None):
        self._index_configs = {cfg.name: cfg for cfg in index_configs}
        if len(self._index_configs) != len(index_configs):
            raise ConfigurationError("The search configuration defines an index name twice")
        self._default_index_names = list(default_index_names) if default_index_names else None

    def get_index_config(self, name: str) -> Optional[IndexConfig]:
        return self._index_configs.get(name)

    def get_default_index_names(self) -> Optional[list[str]]:
        if self._default_index_names is None:
            return None
        return list(self._default_index_names)

    def get_all_index_names(self) -> list[str]:
        return list(self._index_configs)


def create_class_instance(class_path: str, base: type, *, what: str) -> Any:
    """Instantiate a class given as 'package.module:Class' or 'package.module.Class'."""
    if ":" in class_path:
        module_name, _, class_name = class_path.partition(":")
    else:
        module_name, _, class_name = class_path.rpartition(".")
    if not module_name or not class_name:
        raise ConfigurationError(f"Invalid {what} class name: '{class_path}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Loading {what} module '{module_name}' failed") from exc

    cls = getattr(module, class_name, None)
    if not isinstance(cls, type) or not issubclass(cls, base):
        raise ConfigurationError(f"{what} class '{class_path}' must be a subclass of {base.__name__}")

    try:
        return cls()
    except Exception as exc:
        raise ConfigurationError(f"Creating {what} '{class_path}' failed") from exc


def _build_index_config(section: IndexSection, base_dir: Path) -> IndexConfig:
    directory = Path(section.directory).expanduser()
    if not directory.is_absolute():
        directory = (base_dir / directory).resolve()

    controller = None
    if section.access_controller:
        controller = create_class_instance(
            section.access_controller,
            SearchAccessController,
            what="access controller",
        )
        controller.init(dict(section.access_controller_params))

    return IndexConfig(
        name=section.name,
        directory=directory,
        parent_name=section.parent,
        is_parent=section.is_parent,
        access_controller=controller,
        rewrite_rules=tuple((internal, external) for internal, external in section.rewrite_rules),
        use_file_to_http_bridge=section.use_file_to_http_bridge,
        open_in_new_window=section.open_in_new_window,
    )


def load_search_config(config_file: Path) -> SearchConfig:
    """Read and validate a TOML search configuration.

    Relative index directories are resolved against the directory holding the
    configuration file.

    Raises:
        ConfigurationError: If the file is unreadable or invalid
    """
    data = _load_toml(config_file)
    try:
        parsed = SearchConfigFile.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid search configuration {config_file}: {exc}") from exc

    base_dir = config_file.parent
    index_configs = [_build_index_config(section, base_dir) for section in parsed.index]
    return SearchConfig(index_configs, parsed.default_indexes)


class SearchConfigFactory(ABC):
    """Creates the SearchConfig. Subclass and name it in the
    searchConfigFactoryClass init parameter to load configuration elsewhere."""

    @abstractmethod
    def create_search_config(self, request: PageRequest) -> SearchConfig:
        pass


class DefaultSearchConfigFactory(SearchConfigFactory):
    """Loads the TOML file found by resolve_search_config_path()."""

    def create_search_config(self, request: PageRequest) -> SearchConfig:
        config_file = resolve_search_config_path(request.get_init_parameter(CONFIG_FILE_INIT_PARAM))
        logger.info(f"Loading search configuration from {config_file}")
        return load_search_config(config_file)


class SearchConfigHolder:
    """Process-wide, load-once holder of the SearchConfig.

    The first successful load wins. The check and the assignment both happen
    under one lock, so simultaneous first requests run the factory once and
    all observe the same instance. A failed load leaves the holder empty.

    Without an explicit factory, the factory class is taken from the
    request's searchConfigFactoryClass init parameter.
    """

    def __init__(self, factory: Optional[SearchConfigFactory] = None):
        self._lock = threading.Lock()
        self._factory = factory
        self._config: Optional[SearchConfig] = None

    def _create_factory(self, request: PageRequest) -> SearchConfigFactory:
        if self._factory is not None:
            return self._factory
        class_path = request.get_init_parameter(FACTORY_CLASS_INIT_PARAM)
        if class_path:
            return create_class_instance(class_path, SearchConfigFactory, what="search config factory")
        return DefaultSearchConfigFactory()

    def get(self, request: PageRequest) -> SearchConfig:
        with self._lock:
            if self._config is None:
                factory = self._create_factory(request)
                config = factory.create_search_config(request)
                if not isinstance(config, SearchConfig):
                    raise ConfigurationError(
                        f"Search config factory {type(factory).__name__} did not return a SearchConfig"
                    )
                self._config = config
                logger.info(f"Search configuration loaded: {len(config.get_all_index_names())} index(es)")
            return self._config

    def reset(self) -> None:
        with self._lock:
            self._config = None


search_config_holder = SearchConfigHolder()


class ServerSettings(BaseModel):
    """Settings of the HTTP front end."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080)
    config_file: Optional[Path] = Field(default=None)
    factory_class: Optional[str] = Field(default=None)
    encoding: str = Field(default="utf-8")

    @classmethod
    def from_env(cls, cli_config_path: Optional[str] = None) -> "ServerSettings":
        """Load settings from environment variables or defaults.

        Args:
            cli_config_path: Search configuration path from the CLI (highest precedence)
        """
        config_file = cli_config_path or os.environ.get("DOCSEARCH_CONFIG")
        return cls(
            host=os.environ.get("DOCSEARCH_HOST", "127.0.0.1"),
            port=int(os.environ.get("DOCSEARCH_PORT", "8080")),
            config_file=Path(config_file) if config_file else None,
            factory_class=os.environ.get("DOCSEARCH_FACTORY_CLASS") or None,
            encoding=os.environ.get("DOCSEARCH_ENCODING", "utf-8"),
        )

    def init_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.config_file is not None:
            params[CONFIG_FILE_INIT_PARAM] = str(self.config_file)
        if self.factory_class:
            params[FACTORY_CLASS_INIT_PARAM] = self.factory_class
        return params

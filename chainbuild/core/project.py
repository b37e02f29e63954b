"""The application being built and the collaborators that describe it."""

from __future__ import annotations

import pathlib
import re
from typing import Callable, Optional, Union

import structlog

from chainbuild.utils.cancellation import CancellationToken
from chainbuild.core.config_manager import ChainConfig, load_config
from chainbuild.core.source_version import SourceVersion, resolve_source_version
from chainbuild.utils.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

CodeGenerator = Callable[[CancellationToken, "Project"], None]
ChainIdResolver = Callable[["Project"], str]

_MODULE_RE = re.compile(r"^\s*module\s+(\S+)", re.MULTILINE)


class Project:
    """A Go application module to build.

    Attributes:
        name: Application name, the binary is ``{name}d``
        import_path: Go module path of the application
        path: Source root directory
        config: Validated project configuration
        source_version: Tag and commit the sources were resolved to
    """

    def __init__(
            self,
            name: str,
            import_path: str,
            path: Union[str, pathlib.Path],
            config: Optional[ChainConfig] = None,
            source_version: Optional[SourceVersion] = None,
            code_generator: Optional[CodeGenerator] = None,
            chain_id_resolver: Optional[ChainIdResolver] = None,
    ) -> None:
        if not name:
            raise ConfigurationError("project name must not be empty", config_key="name")
        self.name = name
        self.import_path = import_path
        self.path = pathlib.Path(path)
        self.config = config if config is not None else ChainConfig()
        self.source_version = source_version if source_version is not None else SourceVersion()
        self._code_generator = code_generator
        self._chain_id_resolver = chain_id_resolver

    @classmethod
    def load(
            cls,
            ctx: CancellationToken,
            path: Union[str, pathlib.Path],
            config_path: Optional[Union[str, pathlib.Path]] = None,
            code_generator: Optional[CodeGenerator] = None,
    ) -> Project:
        """Load a project from its source root.

        Reads the module path from ``go.mod``, derives the name from its last
        element, loads the configuration and resolves the source version.

        Raises:
            ConfigurationError: If ``go.mod`` is missing or the config is invalid.
        """
        root = pathlib.Path(path).resolve()
        import_path = read_module_path(root)
        config = load_config(root, config_path)
        version = resolve_source_version(ctx, root)
        return cls(
            name=app_name_from_import_path(import_path),
            import_path=import_path,
            path=root,
            config=config,
            source_version=version,
            code_generator=code_generator,
        )

    def d(self) -> str:
        """Daemon name of the application."""
        return f"{self.name}d"

    def binary(self) -> str:
        """File name of the compiled binary."""
        return self.d()

    def chain_id(self) -> str:
        """Chain identifier, from ``genesis.chain_id`` or the project name.

        Raises:
            ConfigurationError: If a custom resolver fails.
        """
        if self._chain_id_resolver is not None:
            try:
                chain_id = self._chain_id_resolver(self)
            except ConfigurationError:
                raise
            except Exception as e:
                raise ConfigurationError(
                    f"cannot resolve chain id: {e}", config_key="genesis.chain_id"
                ) from e
            if not chain_id:
                raise ConfigurationError("chain id must not be empty", config_key="genesis.chain_id")
            return chain_id
        return self.config.genesis.chain_id or self.name

    def generate(self, ctx: CancellationToken) -> None:
        """Run the code generator, if one is configured."""
        if self._code_generator is None:
            logger.debug("no code generator configured", project=self.name)
            return
        ctx.raise_if_cancelled(operation="generate")
        self._code_generator(ctx, self)

    def __repr__(self) -> str:
        return f"Project(name={self.name!r}, import_path={self.import_path!r}, path={str(self.path)!r})"


def read_module_path(root: Union[str, pathlib.Path]) -> str:
    """Return the module path declared in ``root/go.mod``.

    Raises:
        ConfigurationError: If the file is missing or has no module directive.
    """
    gomod = pathlib.Path(root) / "go.mod"
    try:
        content = gomod.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read {gomod}: {e}", config_key="go.mod") from e
    match = _MODULE_RE.search(content)
    if not match:
        raise ConfigurationError(f"no module directive in {gomod}", config_key="go.mod")
    return match.group(1).strip('"')


def app_name_from_import_path(import_path: str) -> str:
    """Derive the application name from a module path.

    ``github.com/org/mars`` gives ``mars``; a trailing major version suffix
    (``/v2``) is skipped.
    """
    parts = [p for p in import_path.split("/") if p]
    if len(parts) > 1 and re.fullmatch(r"v\d+", parts[-1]):
        parts = parts[:-1]
    name = parts[-1] if parts else import_path
    return re.sub(r"[^A-Za-z0-9_]", "", name) or name

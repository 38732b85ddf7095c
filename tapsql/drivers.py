"""Driver registry.

Maps the logical driver names accepted in configuration to concrete
drivers, and renders a connection-parameter mapping into the connection
string each concrete driver understands.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from tapsql.exceptions import ValidationError

Renderer = Callable[[Mapping[str, Any]], str]
EngineFactory = Callable[..., Engine]


def render_keyword_dsn(params: Mapping[str, Any]) -> str:
    """Render parameters as a libpq keyword/value string.

    Pair order carries no meaning for libpq.

    Examples:
        >>> render_keyword_dsn({"host": "db", "port": 5432})
        'host=db port=5432'
    """
    return " ".join(f"{key}={value}" for key, value in params.items())


def create_postgres_engine(dsn: str, **engine_options: Any) -> Engine:
    """Create a SQLAlchemy engine on psycopg2 from a keyword/value DSN."""
    import psycopg2

    return create_engine(
        "postgresql+psycopg2://",
        creator=lambda: psycopg2.connect(dsn),
        **engine_options,
    )


@dataclass(frozen=True)
class DriverSpec:
    """A concrete driver: how to render its connection string and open it."""

    name: str
    render: Renderer
    create_engine: EngineFactory


POSTGRES = DriverSpec(
    name="postgres",
    render=render_keyword_dsn,
    create_engine=create_postgres_engine,
)


class DriverRegistry:
    """Lookup table from logical driver names to concrete drivers.

    Examples:
        >>> registry = default_registry()
        >>> registry.resolve("postgresql")
        'postgres'
    """

    def __init__(self) -> None:
        self._aliases: dict[str, str] = {}
        self._drivers: dict[str, DriverSpec] = {}

    def register(self, spec: DriverSpec, aliases: Iterable[str] = ()) -> None:
        """Register a concrete driver under its own name and any aliases."""
        self._drivers[spec.name] = spec
        self._aliases[spec.name] = spec.name
        for alias in aliases:
            self._aliases[alias] = spec.name

    def resolve(self, logical_name: str) -> str:
        """Return the concrete driver name for a logical name.

        Raises:
            ValidationError: If the name is not registered
        """
        try:
            return self._aliases[logical_name]
        except (KeyError, TypeError):
            raise ValidationError(f"Unknown driver: {logical_name!r}") from None

    def get(self, concrete_name: str) -> DriverSpec:
        try:
            return self._drivers[concrete_name]
        except KeyError:
            raise ValidationError(f"Unknown driver: {concrete_name!r}") from None

    def render(self, concrete_name: str, params: Mapping[str, Any]) -> str:
        return self.get(concrete_name).render(params)

    def is_valid(self, logical_name: str) -> bool:
        return logical_name in self._aliases

    @property
    def names(self) -> list[str]:
        """Logical names accepted by this registry, sorted."""
        return sorted(self._aliases)


def default_registry() -> DriverRegistry:
    """Registry accepting ``postgresql`` and ``postgres``."""
    registry = DriverRegistry()
    registry.register(POSTGRES, aliases=("postgresql",))
    return registry

"""Tests for the driver registry."""

import pytest

from tapsql.drivers import POSTGRES, DriverRegistry, default_registry, render_keyword_dsn
from tapsql.exceptions import ValidationError


class TestDriverRegistry:
    """Test logical name resolution."""

    @pytest.mark.parametrize("name", ["postgres", "postgresql"])
    def test_postgres_aliases(self, name):
        """Both accepted names resolve to the same concrete driver."""
        assert default_registry().resolve(name) == "postgres"

    @pytest.mark.parametrize("name", ["mysql", "Postgres", "", None])
    def test_unknown_driver(self, name):
        """Anything else is rejected before connecting."""
        with pytest.raises(ValidationError, match="Unknown driver"):
            default_registry().resolve(name)

    def test_default_names(self):
        """The default registry accepts exactly the two postgres names."""
        assert default_registry().names == ["postgres", "postgresql"]

    def test_register(self):
        """Registering adds the concrete name and its aliases."""
        registry = DriverRegistry()
        registry.register(POSTGRES, aliases=("pg",))
        assert registry.resolve("pg") == "postgres"
        assert registry.get("postgres") is POSTGRES
        assert registry.is_valid("pg")
        assert not registry.is_valid("postgresql")


class TestRender:
    """Test connection string rendering."""

    def test_keyword_dsn(self):
        """Pairs are key=value joined by single spaces."""
        dsn = render_keyword_dsn({"host": "db.local", "port": 5432, "sslmode": "disable"})
        assert sorted(dsn.split(" ")) == ["host=db.local", "port=5432", "sslmode=disable"]

    def test_empty(self):
        assert render_keyword_dsn({}) == ""

    def test_registry_render(self):
        """Rendering goes through the concrete driver's renderer."""
        dsn = default_registry().render("postgres", {"dbname": "datasync"})
        assert dsn == "dbname=datasync"

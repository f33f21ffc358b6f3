"""Tests for statement bindings and context."""

from dataclasses import dataclass

from sqlhooks import MISSING, Binding, StatementContext


@dataclass
class Account:
    name: str
    balance: int = 0


class TestBinding:
    """Test named and bean bindings."""

    def test_find_missing_name(self):
        """Unbound names resolve to MISSING."""
        binding = Binding()
        assert binding.find("id") is MISSING
        assert "id" not in binding

    def test_none_is_a_value(self):
        """A binding set to None is present."""
        binding = Binding()
        binding.add_named("email", None)
        assert binding.find("email") is None
        assert "email" in binding

    def test_rebind_replaces_value(self):
        binding = Binding()
        binding.add_named("name", "john")
        binding.add_named("name", "JOHN")
        assert binding.find("name") == "JOHN"

    def test_bean_properties_resolve_lazily(self):
        """Bean lookups reflect the entity's state at lookup time."""
        account = Account("savings")
        binding = Binding()
        binding.add_bean("a", account)

        account.balance = 42
        assert binding.find("a.balance") == 42
        assert binding.find("a.name") == "savings"

    def test_unknown_bean_property(self):
        binding = Binding()
        binding.add_bean("a", Account("savings"))
        assert binding.find("a.owner") is MISSING
        assert binding.find("b.name") is MISSING

    def test_named_entry_shadows_bean(self):
        """An explicit entry wins over the bean-derived value."""
        binding = Binding()
        binding.add_bean("a", Account("savings"))
        binding.add_named("a.name", "SAVINGS")
        assert binding.find("a.name") == "SAVINGS"

    def test_names(self):
        binding = Binding()
        binding.add_named("id", 1)
        binding.add_bean("a", Account("savings"))
        assert binding.names() == ["id", "a.name", "a.balance"]

    def test_bean(self):
        account = Account("savings")
        binding = Binding()
        binding.add_bean("a", account)
        assert binding.bean("a") is account
        assert binding.bean("b") is MISSING


class TestStatementContext:
    """Test the statement context record."""

    def test_defaults(self):
        ctx = StatementContext(raw_sql="SELECT 1")
        assert not ctx.is_bound
        assert ctx.parameters == {}
        assert ctx.connection is None

    def test_is_bound_after_render(self):
        ctx = StatementContext(raw_sql="SELECT :id")
        ctx.rendered_sql = "SELECT :id"
        assert ctx.is_bound

    def test_source(self):
        ctx = StatementContext(raw_sql="SELECT 1")
        assert ctx.source == "<statement>"

        ctx.sql_object_type = Account
        assert ctx.source == "Account"

        ctx.method_name = "insert"
        assert ctx.source == "Account.insert"

"""End-to-end tests for declarative data-access objects."""

import logging
from typing import Annotated
from unittest.mock import MagicMock

import pytest
from entities import EMAIL_UPDATE, Person, Post

from sqlhooks import (
    Bind,
    BindBean,
    Customizer,
    CustomizerConfig,
    Handle,
    SqlObject,
    Timestamped,
    UnknownCustomizerError,
    Valid,
    ValidationFailure,
    Validator,
    attach,
    capitalize,
    customize,
    customizer_factory,
    log_sql,
    maintain_counter,
    notify,
    on_demand,
    sql_query,
    sql_update,
    timestamped,
)

PERSON_COLUMNS = "id, first_name, last_name, email, created, modified"

TRACE: list[str] = []


class TraceConfig(CustomizerConfig):
    kind = "trace"

    label: str


class UnregisteredConfig(CustomizerConfig):
    kind = "unregistered_kind"


@customizer_factory(TraceConfig)
def create_trace(config, site):
    def before_binding(ctx):
        TRACE.append(config.label)

    return Customizer(name=f"trace:{config.label}", before_binding=before_binding)


@log_sql()
class PersonDao(SqlObject):
    @sql_update(
        f"INSERT INTO people ({PERSON_COLUMNS}) "
        "VALUES (:p.id, :p.first_name, :p.last_name, :p.email, :created, :modified)"
    )
    def insert(self, p: Annotated[Person, BindBean(), Valid(), Timestamped()]) -> int: ...

    @sql_update("UPDATE people SET email = :p.email, modified = :modified WHERE id = :p.id")
    def update_email(
        self, p: Annotated[Person, BindBean(), Valid(groups=(EMAIL_UPDATE,)), Timestamped(is_new_record=False)]
    ) -> int: ...

    @sql_update("UPDATE people SET modified = :now WHERE id = :id")
    @timestamped()
    def touch(self, id: int) -> int: ...

    @sql_query(f"SELECT {PERSON_COLUMNS} FROM people WHERE id = :id", mapper=Person, single=True)
    def get(self, id: int) -> Person | None: ...

    @sql_query("SELECT COUNT(*) AS n FROM people", mapper=lambda row: row["n"], single=True)
    def count(self) -> int: ...


class NameDao(SqlObject):
    @capitalize("first_name", "last_name")
    @sql_update("INSERT INTO people2 (id, first_name, last_name) VALUES (:id, :first_name, :last_name)")
    def insert(self, id: int, first_name: str, last_name: str) -> int: ...

    @sql_query("SELECT first_name || ' ' || last_name AS name FROM people2 WHERE id = :id", single=True)
    def full_name(self, id: int): ...


class PostDao(SqlObject):
    @maintain_counter(table="users", column="posts_count", binding="p.user_id")
    @sql_update("INSERT INTO posts (content, user_id) VALUES (:p.content, :p.user_id)")
    def insert(self, p: Annotated[Post, BindBean()]) -> int: ...

    @sql_update("DELETE FROM posts WHERE id = :id")
    @maintain_counter(table="users", column="posts_count", binding="author", decrementing=True)
    def delete(self, id: int, author: Annotated[int, Bind("author")]) -> int: ...

    @sql_query("SELECT posts_count FROM users WHERE id = :id", mapper=lambda row: row["posts_count"], single=True)
    def posts_count(self, id: int) -> int: ...


class EventDao(SqlObject):
    @notify(channel="person_events", binding="id")
    @sql_update("DELETE FROM people WHERE id = :id")
    def delete(self, id: int) -> int: ...


@customize(TraceConfig(label="type"))
class TracedDao(SqlObject):
    @customize(TraceConfig(label="method-1"), TraceConfig(label="method-2"))
    @sql_query("SELECT :a AS a, :bee AS b")
    @customize(TraceConfig(label="method-3"))
    def pair(
        self,
        a: Annotated[int, TraceConfig(label="param-a")],
        b: Annotated[int, Bind("bee"), TraceConfig(label="param-b")],
    ): ...


@customize(TraceConfig(label="subtype"))
class SubTracedDao(TracedDao):
    pass


class BrokenDao(SqlObject):
    @customize(UnregisteredConfig())
    @sql_query("SELECT 1")
    def one(self): ...


@pytest.fixture(autouse=True)
def clear_trace():
    TRACE.clear()


@pytest.fixture
def people(engine):
    return on_demand(engine, PersonDao)


class TestPersonDao:
    """Test validation and timestamps on entity statements."""

    def test_insert_timestamps_entity(self, people):
        person = Person("john", "banda", id=1)
        assert people.insert(person) == 1

        assert person.created is not None
        assert person.created == person.modified

        saved = people.get(1)
        assert saved.first_name == "john"
        assert saved.created is not None
        assert saved.created == saved.modified

    def test_invalid_entity_not_inserted(self, people):
        with pytest.raises(ValidationFailure) as exc_info:
            people.insert(Person("", "banda", id=1))

        assert "first_name" in exc_info.value.errors
        assert people.count() == 0

    def test_update_email_checks_group(self, people):
        person = Person("john", "banda", id=1)
        people.insert(person)
        created = person.created

        person.email = "not an email address"
        with pytest.raises(ValidationFailure, match="email"):
            people.update_email(person)

        person.email = "john.banda@example.com"
        assert people.update_email(person) == 1

        saved = people.get(1)
        assert saved.email == "john.banda@example.com"
        assert person.created == created
        assert person.modified >= created

    def test_touch_binds_now(self, people):
        people.insert(Person("john", "banda", id=1))

        assert people.touch(1) == 1
        assert people.touch(2) == 0
        assert people.get(1).modified is not None

    def test_get_missing(self, people):
        assert people.get(99) is None

    def test_shared_validator(self, engine):
        validator = Validator()
        dao = on_demand(engine, PersonDao, validator=validator)
        dao.insert(Person("john", "banda", id=1))
        assert Person in validator._rules

    def test_type_level_log_sql(self, people, caplog):
        name = f"{PersonDao.__module__}.{PersonDao.__qualname__}"
        with caplog.at_level(logging.DEBUG, logger=name):
            people.get(1)

        messages = [r.getMessage() for r in caplog.records if r.name == name]
        assert messages == [f"SELECT {PERSON_COLUMNS} FROM people WHERE id = :id"]


class TestNameDao:
    """Test capitalization through a declared method."""

    def test_stored_uppercase(self, engine):
        dao = on_demand(engine, NameDao)
        dao.insert(1, "john william", "banda")

        assert dao.full_name(1)["name"] == "JOHN WILLIAM BANDA"


class TestPostDao:
    """Test counter maintenance through declared methods."""

    def test_counter(self, engine):
        dao = on_demand(engine, PostDao)
        assert dao.posts_count(1) == 0

        dao.insert(Post("Yay! Post content!", 1))
        dao.insert(Post("Another one", 1))
        assert dao.posts_count(1) == 2

        dao.delete(1, 1)
        assert dao.posts_count(1) == 1

    def test_attached_handle_shares_transaction(self, engine):
        with pytest.raises(RuntimeError):
            with Handle.open(engine) as h:
                attach(h, PostDao).insert(Post("draft", 1))
                raise RuntimeError("abort")

        assert on_demand(engine, PostDao).posts_count(1) == 0


class TestEventDao:
    """Test notifications run on the statement's connection."""

    def test_notify_after_statement(self):
        connection = MagicMock()
        attach(Handle(connection), EventDao).delete(5)

        primary, notification = connection.execute.call_args_list
        assert str(primary.args[0]) == "DELETE FROM people WHERE id = :id"
        assert primary.args[1] == {"id": 5}
        assert str(notification.args[0]) == "SELECT pg_notify(:channel, :payload)"
        assert notification.args[1] == {"channel": "person_events", "payload": "5"}


class TestDeclarationOrder:
    """Test the order declared customizers run in."""

    def test_type_then_method_then_parameters(self, engine):
        rows = on_demand(engine, TracedDao).pair(1, b=2)

        assert rows[0]["b"] == 2
        assert TRACE == ["type", "method-1", "method-2", "method-3", "param-a", "param-b"]

    def test_inherited_type_configuration(self, engine):
        on_demand(engine, SubTracedDao).pair(1, 2)
        assert TRACE[:2] == ["type", "subtype"]

    def test_unknown_kind(self, engine):
        with pytest.raises(UnknownCustomizerError, match="unregistered_kind"):
            on_demand(engine, BrokenDao).one()


class TestSqlObject:
    """Test constructing data-access objects."""

    def test_needs_handle_or_engine(self, engine):
        with pytest.raises(ValueError):
            SqlObject()
        with pytest.raises(ValueError):
            SqlObject(Handle(MagicMock()), engine=engine)

    def test_factory_params(self):
        validator = Validator()
        dao = attach(Handle(MagicMock()), PersonDao, validator=validator)
        assert dao.factory_params() == {"validator": validator}

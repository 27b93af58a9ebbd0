"""
DDL helpers on top of Database: CREATE/ALTER/DROP TABLE and foreign keys.

Table, column and key names always go through ``?F``. Column types and
engine names are schema definitions written by the application, not user
input; engine names are still restricted to word characters.
"""

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from dbquery.core.config import settings
from dbquery.core.db.database import Database
from dbquery.engines.sql import QueryCompiler

REFERENTIAL_ACTIONS = ("CASCADE", "SET NULL", "NO ACTION", "RESTRICT")

_OPTION_NAME = re.compile(r"^\w+$")

_FOREIGN_KEY = re.compile(
    r"CONSTRAINT `(.*?)` FOREIGN KEY \(`(.*?)`\) REFERENCES `(.*?)` \(`(.*?)`\)(.*)"
)
_FOREIGN_KEY_ACTION = re.compile(
    r"ON (DELETE|UPDATE) (CASCADE|SET NULL|NO ACTION|RESTRICT)"
)


def _check_action(value: str | None) -> str | None:
    if value is None:
        return None
    action = value.strip().upper()
    if action not in REFERENTIAL_ACTIONS:
        raise ValueError(
            f"Invalid referential action {value!r}; expected one of {', '.join(REFERENTIAL_ACTIONS)}"
        )
    return action


def _check_option(value: str, what: str) -> str:
    if not _OPTION_NAME.match(value):
        raise ValueError(f"Invalid {what} name: {value!r}")
    return value


def _check_engine(engine: str) -> str:
    return _check_option(engine, "storage engine").upper()


# ---------------------------------------------------------------------------
# Schema models
# ---------------------------------------------------------------------------


class ForeignKeyTarget(BaseModel):
    """Referenced column of a foreign key to be created."""

    table: str
    field: str
    ondelete: str | None = None
    onupdate: str | None = None

    @field_validator("ondelete", "onupdate")
    @classmethod
    def _validate_action(cls, v: str | None) -> str | None:
        return _check_action(v)


class ForeignKey(BaseModel):
    """Existing foreign key as reported by SHOW CREATE TABLE."""

    name: str
    field: str
    table: str
    target_field: str
    ondelete: str | None = None
    onupdate: str | None = None


class FieldDefinition(BaseModel):
    """Column definition; ``name`` renames the column in an ALTER ... CHANGE."""

    type: str
    length: int | None = None
    unsigned: bool = False
    zerofill: bool = False
    binary: bool = False
    notnull: bool = False
    auto_increment: bool = False
    comment: str | None = None
    default: bool | int | float | str | None = None
    primary: bool = False
    index: bool = False
    name: str | None = None
    drop_foreign_keys: bool = False
    add_foreign_key: ForeignKeyTarget | None = None


class TableChanges(BaseModel):
    """Changes for alter_table; ``name`` renames the table."""

    add: dict[str, FieldDefinition] = Field(default_factory=dict)
    drop: list[str] = Field(default_factory=list)
    change: dict[str, FieldDefinition] = Field(default_factory=dict)
    name: str | None = None
    comment: str | None = None
    engine: str | None = None


def _as_field(field: FieldDefinition | Mapping[str, Any]) -> FieldDefinition:
    if isinstance(field, FieldDefinition):
        return field
    return FieldDefinition.model_validate(field)


def field_declaration(
    compiler: QueryCompiler, name: str, field: FieldDefinition | Mapping[str, Any]
) -> str:
    """Column declaration, e.g. ```id` INT (11) UNSIGNED NOT NULL AUTO_INCREMENT``."""
    f = _as_field(field)
    sql = compiler.compile("?F ", [name]) + f.type.upper()
    if f.length is not None:
        sql += f" ({int(f.length)})"
    if f.default is not None:
        sql += compiler.compile(" DEFAULT ?", [f.default])
    if f.unsigned:
        sql += " UNSIGNED"
    if f.zerofill:
        sql += " ZEROFILL"
    if f.binary:
        sql += " BINARY"
    if f.notnull:
        sql += " NOT NULL"
    if f.auto_increment:
        sql += " AUTO_INCREMENT"
    if f.comment is not None:
        sql += compiler.compile(" COMMENT ?", [f.comment])
    return sql


def _foreign_key_actions(target: ForeignKeyTarget) -> str:
    sql = ""
    if target.ondelete is not None:
        sql += f" ON DELETE {target.ondelete}"
    if target.onupdate is not None:
        sql += f" ON UPDATE {target.onupdate}"
    return sql


class SchemaEditor:
    """Runs DDL statements through a Database."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _declaration(self, name: str, field: FieldDefinition) -> str:
        return field_declaration(self.db.compiler, name, field)

    def create_table(
        self,
        table: str,
        fields: Mapping[str, FieldDefinition | Mapping[str, Any]],
        engine: str | None = None,
        comment: str | None = None,
    ) -> None:
        """CREATE TABLE with one PRIMARY KEY over all ``primary`` fields and a KEY per ``index`` field."""
        db = self.db
        columns = {name: _as_field(f) for name, f in fields.items()}

        parts = [self._declaration(name, f) for name, f in columns.items()]
        primary = [name for name, f in columns.items() if f.primary]
        if primary:
            parts.append(db.compiled_query("PRIMARY KEY (?@F)", primary))
        for name, f in columns.items():
            if f.index:
                parts.append(db.compiled_query("KEY ?F (?F)", name, name))

        sql = db.compiled_query("CREATE TABLE ?F", table) + " (" + ", ".join(parts) + ")"
        if engine:
            sql += " ENGINE = " + _check_engine(engine)
        if comment:
            sql += db.compiled_query(" COMMENT = ?", comment)
        sql += " CHARACTER SET = " + _check_option(settings.DEFAULT_TABLE_CHARSET, "charset")
        sql += " COLLATE = " + _check_option(settings.DEFAULT_TABLE_COLLATION, "collation")
        db.query(sql)

    def alter_table(self, table: str, changes: TableChanges | Mapping[str, Any]) -> Any:
        """ALTER TABLE: add, drop and change columns, rename, set comment/engine."""
        db = self.db
        ch = changes if isinstance(changes, TableChanges) else TableChanges.model_validate(changes)
        clauses: list[str] = []
        existing_keys: list[ForeignKey] | None = None

        def keys_on(column: str) -> list[ForeignKey]:
            nonlocal existing_keys
            if existing_keys is None:
                existing_keys = self.get_foreign_keys(table)
            return [k for k in existing_keys if k.field == column]

        if ch.name:
            clauses.append(db.compiled_query(" RENAME ?F", ch.name))

        for name, field in ch.add.items():
            clauses.append(" ADD " + self._declaration(name, field))
            if field.add_foreign_key is not None:
                target = field.add_foreign_key
                clauses.append(
                    db.compiled_query(
                        " ADD FOREIGN KEY (?F) REFERENCES ?F (?F)",
                        name,
                        target.table,
                        target.field,
                    )
                    + _foreign_key_actions(target)
                )

        for name in ch.drop:
            for key in keys_on(name):
                clauses.append(db.compiled_query(" DROP FOREIGN KEY ?F", key.name))
            clauses.append(db.compiled_query(" DROP ?F", name))

        for name, field in ch.change.items():
            new_name = field.name or name
            if field.drop_foreign_keys or field.add_foreign_key is not None:
                for key in keys_on(name):
                    clauses.append(db.compiled_query(" DROP FOREIGN KEY ?F", key.name))
            clauses.append(
                db.compiled_query(" CHANGE ?F ", name) + self._declaration(new_name, field)
            )
            if field.add_foreign_key is not None:
                target = field.add_foreign_key
                clauses.append(
                    db.compiled_query(
                        " ADD FOREIGN KEY (?F) REFERENCES ?F (?F)",
                        new_name,
                        target.table,
                        target.field,
                    )
                    + _foreign_key_actions(target)
                )

        options = ""
        if ch.engine:
            options += " ENGINE = " + _check_engine(ch.engine)
        if ch.comment is not None:
            options += db.compiled_query(" COMMENT = ?", ch.comment)
        if options:
            clauses.append(options)

        return db.query(db.compiled_query("ALTER TABLE ?F", table) + ",".join(clauses))

    def drop_table(self, table: str) -> None:
        self.db.query("DROP TABLE ?F", table)

    def copy_table(self, old_table: str, new_table: str) -> None:
        """Create *new_table* with the structure of *old_table* (no rows)."""
        self.db.query("CREATE TABLE ?F LIKE ?F", new_table, old_table)

    def get_foreign_keys(self, table: str) -> list[ForeignKey]:
        """Foreign keys of *table*, parsed from SHOW CREATE TABLE."""
        row = self.db.get_row("SHOW CREATE TABLE ?F", table)
        if row is None:
            return []
        keys: list[ForeignKey] = []
        for match in _FOREIGN_KEY.finditer(row["Create Table"]):
            name, field, ref_table, ref_field, tail = match.groups()
            ondelete = None
            onupdate = None
            for event, action in _FOREIGN_KEY_ACTION.findall(tail):
                if event == "DELETE":
                    ondelete = action
                else:
                    onupdate = action
            keys.append(
                ForeignKey(
                    name=name,
                    field=field,
                    table=ref_table,
                    target_field=ref_field,
                    ondelete=ondelete,
                    onupdate=onupdate,
                )
            )
        return keys

    def add_foreign_key(
        self,
        table: str,
        field: str,
        foreign_table: str,
        foreign_field: str,
        name: str | None = None,
        ondelete: str | None = None,
        onupdate: str | None = None,
    ) -> Any:
        db = self.db
        target = ForeignKeyTarget(
            table=foreign_table, field=foreign_field, ondelete=ondelete, onupdate=onupdate
        )
        constraint = db.compiled_query(" CONSTRAINT ?F", name) if name is not None else ""
        return db.query(
            "ALTER TABLE ?F ADD?N FOREIGN KEY (?F) REFERENCES ?F (?F)?N",
            table,
            constraint,
            field,
            target.table,
            target.field,
            _foreign_key_actions(target),
        )

    def drop_foreign_key(self, table: str, key: str) -> Any:
        return self.db.query("ALTER TABLE ?F DROP FOREIGN KEY ?F", table, key)
